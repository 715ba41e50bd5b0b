"""Agent client module for polykey_cli.

Provides :class:`PolykeyClient`, a blocking JSON-RPC client backed by
:class:`httpx.Client` with session-token handling and typed error mapping.

Example::

    from polykey_cli.client import PolykeyClient

    with PolykeyClient(options) as client:
        for node in client.stream("nodesGetAll", metadata=auth):
            ...
"""

from polykey_cli.client.rpc_client import PolykeyClient

__all__ = ["PolykeyClient"]
