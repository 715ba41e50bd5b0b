"""Exception hierarchy for polykey_cli.

All exceptions inherit from :class:`PolykeyCLIError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`polykey_cli.exit_codes`. The top-level error handler in
:func:`polykey_cli.app.main` catches ``PolykeyCLIError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PolykeyCLIError (exit 1)
    +-- InvalidUsageError        (exit 64)
    +-- ClientAuthError          (exit 77)
    |   +-- ClientAuthMissingError
    |   +-- ClientAuthDeniedError
    +-- PasswordMissingError     (exit 77)
    +-- AgentNotRunningError     (exit 69)
    +-- AgentConnectionError     (exit 69)
    +-- RemoteError              (exit 70)
    +-- FileReadError            (exit 74)
    +-- PublicJWKFileReadError   (exit 65)
    +-- NodeFindFailedError      (exit 1)
    +-- NodePingFailedError      (exit 1)
    +-- ConfigError              (exit 78)

The two :class:`ClientAuthError` subclasses are the only *credential-shaped*
errors; :mod:`polykey_cli.auth.retry` treats them as recoverable when the
session is attended.
"""

from __future__ import annotations

from typing import Any, Optional

from polykey_cli.exit_codes import (
    EXIT_CONFIG,
    EXIT_DATAERR,
    EXIT_GENERIC_FAILURE,
    EXIT_IOERR,
    EXIT_NOPERM,
    EXIT_SOFTWARE,
    EXIT_UNAVAILABLE,
    EXIT_USAGE,
)


class PolykeyCLIError(Exception):
    """Base exception for all polykey_cli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`polykey_cli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    description: str = "Polykey CLI error"

    def __init__(self, message: str = "", exit_code: int | None = None):
        super().__init__(message or self.description)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PolykeyCLIError):
    """Raised for invalid CLI arguments (bad node id, port out of range)."""

    exit_code = EXIT_USAGE
    description = "Invalid arguments"


class ClientAuthError(PolykeyCLIError):
    """Base for errors reporting that the agent refused the call's credentials."""

    exit_code = EXIT_NOPERM
    description = "Client authentication failed"


class ClientAuthMissingError(ClientAuthError):
    """The call carried no credential at all."""

    description = "Authorisation metadata is required but missing"


class ClientAuthDeniedError(ClientAuthError):
    """The call carried a credential that the agent rejected."""

    description = "Authorisation metadata is incorrect or expired"


class PasswordMissingError(PolykeyCLIError):
    """Raised when the password prompt is cancelled or returns nothing."""

    exit_code = EXIT_NOPERM
    description = "Password is necessary to authenticate"


class AgentNotRunningError(PolykeyCLIError):
    """Raised when the status file shows no live agent at the node path."""

    exit_code = EXIT_UNAVAILABLE
    description = "Polykey agent is not running"


class AgentConnectionError(PolykeyCLIError):
    """Raised on network-level failures talking to the agent."""

    exit_code = EXIT_UNAVAILABLE
    description = "Failed to connect to the Polykey agent"


class RemoteError(PolykeyCLIError):
    """An error reported by the agent that is not credential-shaped.

    Args:
        message: The agent-supplied message.
        error_type: The agent's error class name (e.g.
            ``"ErrorNodeGraphNodeIdNotFound"``).
        data: Any additional structured payload from the agent.
        exit_code: Optional exit code reported by the agent.
    """

    exit_code = EXIT_SOFTWARE
    description = "Remote error from the Polykey agent"

    def __init__(
        self,
        message: str = "",
        error_type: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code=exit_code)
        self.error_type = error_type
        self.data = data or {}


class FileReadError(PolykeyCLIError):
    """Raised when a local input file (password file, plaintext) can't be read."""

    exit_code = EXIT_IOERR
    description = "Failed to read file"


class PublicJWKFileReadError(PolykeyCLIError):
    """Raised when a public JWK file can't be read or parsed."""

    exit_code = EXIT_DATAERR
    description = "Failed to parse JWK file"


class NodeFindFailedError(PolykeyCLIError):
    """Raised by ``nodes find`` when the node could not be located."""

    description = "Failed to find node"


class NodePingFailedError(PolykeyCLIError):
    """Raised by ``nodes ping`` when the node did not respond."""

    description = "Node was not online or not found"


class ConfigError(PolykeyCLIError):
    """Raised for unusable local state (unreadable status file, no node path)."""

    exit_code = EXIT_CONFIG
    description = "Configuration error"
