"""Numeric process exit codes following ``sysexits.h`` conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~polykey_cli.exceptions.PolykeyCLIError` subclass.
Shell wrappers and CI scripts can inspect the exit code to tell an
authentication failure apart from an unreachable agent without parsing
stderr.

Example::

    $ PK_PASSWORD=wrong pk agent status
    $ echo $?
    77   # EXIT_NOPERM -- credentials were rejected
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_USAGE = 64
"""The command was invoked with invalid arguments."""

EXIT_DATAERR = 65
"""Input data was malformed (bad JWK, undecodable file contents)."""

EXIT_UNAVAILABLE = 69
"""The agent is not running or cannot be reached."""

EXIT_SOFTWARE = 70
"""The agent reported an internal error."""

EXIT_IOERR = 74
"""A local file could not be read or written."""

EXIT_NOPERM = 77
"""Authentication is missing or was denied by the agent."""

EXIT_CONFIG = 78
"""Local configuration (node path, status file) is unusable."""

EXIT_INTERRUPTED = 130
"""The command was cancelled with Ctrl-C."""
