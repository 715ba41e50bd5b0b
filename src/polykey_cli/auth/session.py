"""Persistent session token store scoped to a node path.

The agent issues a session token on every successful authenticated call.
The CLI caches the latest one at ``<node-path>/token`` so that serial
commands authenticate without asking for the password again. The file is
written atomically with ``0o600`` permissions via
:func:`~polykey_cli.config.atomic_write`.

``pk agent lock`` removes the file; ``pk agent unlock`` writes a fresh
token.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from polykey_cli.config import atomic_write, token_path


class SessionTokenStore:
    """Read/write the session token for a single node path.

    Args:
        node_path: The agent's node path.

    Example::

        store = SessionTokenStore("/home/me/.local/share/polykey")
        store.write_token("abc")
        assert store.read_token() == "abc"
    """

    def __init__(self, node_path: str | Path) -> None:
        self._path = token_path(node_path)

    @property
    def path(self) -> Path:
        """The filesystem path of the token file."""
        return self._path

    def read_token(self) -> Optional[str]:
        """Return the stored token, or ``None`` if absent, empty or unreadable."""
        if not self._path.is_file():
            return None
        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return token or None

    def write_token(self, token: str) -> None:
        """Persist *token* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        atomic_write(self._path, token, mode=0o600)

    def clear(self) -> None:
        """Delete the token file. No-op when it is already absent."""
        if self._path.is_file():
            self._path.unlink()
