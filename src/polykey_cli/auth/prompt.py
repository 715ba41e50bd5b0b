"""Interactive password prompt used by the retry driver."""

from __future__ import annotations

from typing import Optional

import click
import typer

PASSWORD_PROMPT = "Please enter the password"


def prompt_password(message: str = PASSWORD_PROMPT) -> Optional[str]:
    """Ask for the agent password with hidden input.

    An empty answer is returned as ``""`` and sent to the agent like any
    other password.

    Returns:
        The entered password, or ``None`` if the prompt was aborted
        (Ctrl-C / end of input).
    """
    try:
        return typer.prompt(message, hide_input=True, default="", show_default=False)
    except click.exceptions.Abort:
        return None
