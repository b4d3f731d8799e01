"""Console output helpers shared by the command-line commands."""

from __future__ import annotations

_quiet = False


class CommandError(Exception):
    """A command failed; the message is what the user is shown."""


def set_quiet(quiet):
    """Suppress or re-enable non-error output."""
    global _quiet
    _quiet = bool(quiet)


def print_success(message):
    """Print a success line unless output is quiet."""
    if not _quiet:
        print(f"✓ {message}")


def print_error(message):
    """Print an error line; never suppressed."""
    print(f"✗ {message}")


def print_info(message):
    """Print an informational line unless output is quiet."""
    if not _quiet:
        print(message)