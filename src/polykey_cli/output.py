"""Output formatting system with strict stdout/stderr discipline.

* **stdout** -- primary data only (agent responses, JSON, secret contents).
  This is what downstream tools pipe and parse.
* **stderr** -- all diagnostics (status, warnings, errors, debug). Never
  contaminates the data stream.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

Data is written in one of two formats chosen with ``--format``:

* ``human`` -- lists are printed one item per line, dicts as
  ``key<TAB>value`` lines.
* ``json`` -- every payload is serialised with :func:`json.dumps`.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding the format, Rich
   consoles, and verbose flag. Created once in
   :func:`~polykey_cli.app.main_callback` and installed via
   :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``
   instance so callers do not need to pass the manager around.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console


class OutputFormat(str, Enum):
    """Enumeration of supported output formats."""

    HUMAN = "human"
    JSON = "json"


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Data goes to stdout through :meth:`print_list`, :meth:`print_dict`,
    :meth:`print_json` and :meth:`print_raw`. Diagnostics go to a Rich
    :class:`~rich.console.Console` bound to stderr.

    Args:
        format: Desired data format.
        no_color: Disable all colour and Rich markup on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.HUMAN,
        no_color: bool = False,
        verbose: bool = False,
    ) -> None:
        self._format = format
        self._no_color = no_color or _should_disable_color()
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
            highlight=False,
        )

    @property
    def format(self) -> OutputFormat:
        """The active data format."""
        return self._format

    @property
    def is_json(self) -> bool:
        """Whether data is being emitted as JSON."""
        return self._format == OutputFormat.JSON

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print a line of text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_list(self, items: list[Any]) -> None:
        """Print a list of items.

        In ``human`` format each item is written on its own line; in ``json``
        format the whole list is written as a JSON array.

        Args:
            items: The values to print.
        """
        if self.is_json:
            self.print_json(items)
            return
        for item in items:
            self.print_data(item if isinstance(item, str) else _to_json(item))

    def print_dict(self, data: dict[str, Any]) -> None:
        """Print a mapping.

        In ``human`` format each entry is written as ``key<TAB>value`` with
        nested values JSON-encoded; in ``json`` format the mapping is written
        as a JSON object.

        Args:
            data: The mapping to print.
        """
        if self.is_json:
            self.print_json(data)
            return
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = _to_json(value)
            elif value is None:
                value = ""
            self.print_data(f"{key}\t{value}")

    def print_json(self, data: Any) -> None:
        """Print *data* as JSON regardless of the active format."""
        self.print_data(_to_json(data))

    def print_raw(self, data: bytes) -> None:
        """Write raw bytes to stdout without any transformation.

        Used for secret contents, which may be binary.
        """
        stream = getattr(sys.stdout, "buffer", None)
        if stream is not None:
            stream.write(data)
            stream.flush()
        else:
            sys.stdout.write(data.decode("utf-8", errors="replace"))
            sys.stdout.flush()

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr."""
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr."""
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr.

        In ``json`` format the error is emitted as a JSON object so that
        wrappers reading stderr can parse it.
        """
        if self.is_json:
            print(_to_json({"error": message}), file=sys.stderr, flush=True)
        elif self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown in verbose mode."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim][debug] {message}[/dim]")


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _should_disable_color() -> bool:
    """Check if color should be disabled.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def print_list(items: list[Any]) -> None:
    get_output().print_list(items)


def print_dict(data: dict[str, Any]) -> None:
    get_output().print_dict(data)


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_raw(data: bytes) -> None:
    get_output().print_raw(data)


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def success(message: str) -> None:
    """Print success message to stderr via the global OutputManager."""
    get_output().success(message)


def warning(message: str) -> None:
    """Print warning to stderr via the global OutputManager."""
    get_output().warning(message)


def debug(message: str) -> None:
    """Print debug message to stderr via the global OutputManager."""
    get_output().debug(message)
