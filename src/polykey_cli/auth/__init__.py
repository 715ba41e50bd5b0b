"""Authentication for calls to the Polykey agent.

The main entry points are:

- :func:`retry_authentication` / :func:`retry_authentication_async` -- wrap
  an agent call so that missing or rejected credentials lead to a password
  prompt (attended sessions) or an immediate failure (unattended sessions).
- :class:`CredentialAvailability` -- which credential sources the
  environment provides, sampled once per retry sequence.
- :func:`process_authentication` -- initial metadata from a password file,
  ``PK_PASSWORD`` or ``PK_TOKEN``.
- :class:`SessionTokenStore` -- the cached session token in the node path.

Typical usage::

    from polykey_cli.auth import process_authentication, retry_authentication

    meta = process_authentication(password_file)
    status = retry_authentication(
        lambda auth: client.call("agentStatus", metadata=auth), meta
    )
"""

from polykey_cli.auth.credentials import CredentialAvailability, process_authentication
from polykey_cli.auth.encoding import (
    AuthMetadata,
    encode_auth_from_password,
    encode_auth_from_token,
    password_metadata,
    token_metadata,
)
from polykey_cli.auth.retry import (
    AuthErrorKind,
    RetryDriver,
    classify_error,
    retry_authentication,
    retry_authentication_async,
)
from polykey_cli.auth.session import SessionTokenStore

__all__ = [
    "AuthErrorKind",
    "AuthMetadata",
    "CredentialAvailability",
    "RetryDriver",
    "SessionTokenStore",
    "classify_error",
    "encode_auth_from_password",
    "encode_auth_from_token",
    "password_metadata",
    "process_authentication",
    "retry_authentication",
    "retry_authentication_async",
    "token_metadata",
]
