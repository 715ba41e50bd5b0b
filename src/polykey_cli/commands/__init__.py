"""CLI sub-command groups for polykey_cli.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app in :mod:`polykey_cli.app`:

* :mod:`~polykey_cli.commands.agent` -- status, stop, unlock, lock, lockall.
* :mod:`~polykey_cli.commands.identities` -- provider authentication, gestalts and trust.
* :mod:`~polykey_cli.commands.keys` -- encrypt, decrypt, public key, certificate.
* :mod:`~polykey_cli.commands.nodes` -- the node graph.
* :mod:`~polykey_cli.commands.notifications` -- reading notifications.
* :mod:`~polykey_cli.commands.secrets` -- reading and editing secrets in vaults.
* :mod:`~polykey_cli.commands.vaults` -- vault history, permissions and scans.

:mod:`~polykey_cli.commands._common` holds the shared client/auth plumbing.
"""
