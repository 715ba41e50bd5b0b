"""Credential source resolution.

Two questions are answered here before any agent call is made:

1. **Is this invocation attended?** :class:`CredentialAvailability` records
   whether a token or password was supplied through the environment and
   whether interactive prompting is possible. Supplying either credential
   through the environment marks the run as unattended (scripted), and an
   unattended run must fail fast rather than prompt.
2. **What does the first attempt carry?** :func:`process_authentication`
   picks the initial auth metadata from a password file, ``PK_PASSWORD``
   or ``PK_TOKEN``, in that order.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from polykey_cli.auth.encoding import AuthMetadata, password_metadata, token_metadata
from polykey_cli.config import ENV_PASSWORD, ENV_TOKEN, read_password_file


@dataclass(frozen=True)
class CredentialAvailability:
    """Snapshot of which credential sources exist for one retry sequence.

    Attributes:
        token_present: A session token was supplied via ``PK_TOKEN``.
        password_present: A password was supplied via ``PK_PASSWORD``.
        can_prompt: Interactive prompting is permitted (``--no-input``
            clears this).
    """

    token_present: bool = False
    password_present: bool = False
    can_prompt: bool = True

    @property
    def unattended(self) -> bool:
        """True when credential-shaped failures must not trigger a prompt."""
        return self.token_present or self.password_present or not self.can_prompt

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        can_prompt: bool = True,
    ) -> CredentialAvailability:
        """Sample *environ* (default ``os.environ``) once.

        A variable counts as present when it is set to a non-empty value.
        """
        env = os.environ if environ is None else environ
        return cls(
            token_present=bool(env.get(ENV_TOKEN)),
            password_present=bool(env.get(ENV_PASSWORD)),
            can_prompt=can_prompt,
        )


def process_authentication(
    password_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AuthMetadata:
    """Compute the auth metadata for the first attempt of a call.

    Precedence: ``--password-file``, then ``PK_PASSWORD``, then ``PK_TOKEN``.
    When none is available the metadata is empty and the client falls back
    to the stored session token.

    Raises:
        FileReadError: If *password_file* cannot be read.
    """
    env = os.environ if environ is None else environ
    if password_file is not None:
        return password_metadata(read_password_file(password_file))
    password = env.get(ENV_PASSWORD)
    if password:
        return password_metadata(password)
    token = env.get(ENV_TOKEN)
    if token:
        return token_metadata(token)
    return {}
