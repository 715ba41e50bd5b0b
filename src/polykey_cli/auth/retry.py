"""Authentication retry driver.

Every agent call in the CLI is wrapped by :func:`retry_authentication`. The
wrapped callable receives the auth metadata for the current attempt and
either returns a result or raises. Failures are classified once, at the
catch site, by :func:`classify_error`:

- :attr:`AuthErrorKind.AUTH_MISSING` / :attr:`AuthErrorKind.AUTH_DENIED` --
  credential-shaped. When the session is attended the driver prompts for a
  password, encodes it into fresh metadata and calls again. When the
  session is unattended the error is re-raised unchanged.
- :attr:`AuthErrorKind.OTHER` -- re-raised unchanged, always.

Attempt ``0`` carries the caller's metadata (from a password file,
``PK_PASSWORD``, ``PK_TOKEN``, or nothing); every later attempt carries the
most recently prompted password. There is no ceiling on attempts unless the
caller passes ``max_attempts``: an agent that keeps answering
``AUTH_DENIED`` keeps being retried for as long as someone answers the
prompt.

Example::

    status = retry_authentication(
        lambda auth: client.call("agentStatus", metadata=auth),
        process_authentication(password_file),
    )
"""

from __future__ import annotations

import enum
import inspect
from typing import Awaitable, Callable, Optional, TypeVar, Union

from polykey_cli.auth.credentials import CredentialAvailability
from polykey_cli.auth.encoding import AuthMetadata, password_metadata
from polykey_cli.auth.prompt import prompt_password
from polykey_cli.exceptions import (
    ClientAuthDeniedError,
    ClientAuthMissingError,
    PasswordMissingError,
)
from polykey_cli.output import debug

T = TypeVar("T")

Prompter = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]
Encoder = Callable[[str], AuthMetadata]


class AuthErrorKind(enum.Enum):
    """Closed classification of a failed attempt."""

    AUTH_MISSING = "auth_missing"
    AUTH_DENIED = "auth_denied"
    OTHER = "other"

    @property
    def credential_shaped(self) -> bool:
        return self is not AuthErrorKind.OTHER


def classify_error(exc: BaseException) -> AuthErrorKind:
    """Map an exception raised by an attempt onto :class:`AuthErrorKind`."""
    if isinstance(exc, ClientAuthMissingError):
        return AuthErrorKind.AUTH_MISSING
    if isinstance(exc, ClientAuthDeniedError):
        return AuthErrorKind.AUTH_DENIED
    return AuthErrorKind.OTHER


class RetryDriver:
    """Runs a call, re-authenticating after credential-shaped failures.

    Args:
        availability: Which credential sources exist for this sequence. It is
            captured once at construction and never re-sampled.
        prompt: Returns a password, or ``None`` to cancel. May return an
            awaitable when used with :meth:`run_async`.
        encode: Turns a password into auth metadata.
        max_attempts: Optional ceiling on the total number of invocations.
            ``None`` retries until a non-credential error or a success.
    """

    def __init__(
        self,
        availability: CredentialAvailability,
        prompt: Prompter = prompt_password,
        encode: Encoder = password_metadata,
        max_attempts: Optional[int] = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._availability = availability
        self._prompt = prompt
        self._encode = encode
        self._max_attempts = max_attempts

    def run(
        self,
        call: Callable[[AuthMetadata], T],
        meta: Optional[AuthMetadata] = None,
    ) -> T:
        """Invoke *call* until it succeeds or fails with a fatal error."""
        metadata: AuthMetadata = dict(meta or {})
        attempt = 0
        while True:
            try:
                return call(metadata)
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise
                password = self._prompt()
            metadata = self._next_metadata(password)
            attempt += 1

    async def run_async(
        self,
        call: Callable[[AuthMetadata], Awaitable[T]],
        meta: Optional[AuthMetadata] = None,
    ) -> T:
        """Coroutine counterpart of :meth:`run` for awaitable calls."""
        metadata: AuthMetadata = dict(meta or {})
        attempt = 0
        while True:
            try:
                return await call(metadata)
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise
                password = self._prompt()
                if inspect.isawaitable(password):
                    password = await password
            metadata = self._next_metadata(password)
            attempt += 1

    def _should_retry(self, exc: Exception, attempt: int) -> bool:
        kind = classify_error(exc)
        if not kind.credential_shaped:
            return False
        if self._availability.unattended:
            debug(f"Attempt {attempt} failed with {kind.value}; unattended, not retrying")
            return False
        if self._max_attempts is not None and attempt + 1 >= self._max_attempts:
            debug(f"Attempt {attempt} failed with {kind.value}; attempt limit reached")
            return False
        debug(f"Attempt {attempt} failed with {kind.value}; prompting for password")
        return True

    def _next_metadata(self, password: Optional[str]) -> AuthMetadata:
        if password is None:
            raise PasswordMissingError()
        return self._encode(password)


def retry_authentication(
    call: Callable[[AuthMetadata], T],
    meta: Optional[AuthMetadata] = None,
    *,
    availability: Optional[CredentialAvailability] = None,
    prompt: Prompter = prompt_password,
    encode: Encoder = password_metadata,
    max_attempts: Optional[int] = None,
) -> T:
    """Run *call* with *meta*, prompting for a password on auth failures.

    When *availability* is omitted the process environment is sampled once
    via :meth:`CredentialAvailability.from_environ`.

    Returns:
        Whatever *call* returns on its first successful attempt.

    Raises:
        Exception: The exact exception of the final failed attempt, or
            :class:`~polykey_cli.exceptions.PasswordMissingError` if the
            prompt was cancelled.
    """
    if availability is None:
        availability = CredentialAvailability.from_environ()
    driver = RetryDriver(availability, prompt=prompt, encode=encode, max_attempts=max_attempts)
    return driver.run(call, meta)


async def retry_authentication_async(
    call: Callable[[AuthMetadata], Awaitable[T]],
    meta: Optional[AuthMetadata] = None,
    *,
    availability: Optional[CredentialAvailability] = None,
    prompt: Prompter = prompt_password,
    encode: Encoder = password_metadata,
    max_attempts: Optional[int] = None,
) -> T:
    """Awaitable variant of :func:`retry_authentication`."""
    if availability is None:
        availability = CredentialAvailability.from_environ()
    driver = RetryDriver(availability, prompt=prompt, encode=encode, max_attempts=max_attempts)
    return await driver.run_async(call, meta)
