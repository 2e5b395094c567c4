"""
Exception hierarchy for tspec.

Every error carries a message plus optional context (file, key, exit code)
and suggestions, formatted consistently for the CLI.

Example::

    from tspec.exceptions import UnknownKeyError

    raise UnknownKeyError(
        "rustc.opt",
        valid_keys=["rustc.opt_level", "rustc.lto"],
    )
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

__all__ = [
    "TspecError",
    "SpecParseError",
    "UnknownKeyError",
    "InvalidValueError",
    "IndexOutOfBoundsError",
    "PathNotFoundError",
    "ToolchainFailedError",
    "SpecIOError",
    "ZeroTestsRanError",
    "ConfigurationError",
    "ShellGlobWarning",
]


class TspecError(Exception):
    """
    Base exception for all tspec errors.

    Attributes:
        context: Dictionary of contextual information (file, key, etc.)
        suggestions: List of actionable suggestions for fixing the error
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context and suggestions."""
        parts = [self.message]

        if self.context:
            parts.append("\n\nContext:")
            for key, value in self.context.items():
                parts.append(f"\n  {key}: {value}")

        if self.suggestions:
            parts.append("\n\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"\n  - {suggestion}")

        return "".join(parts)

    def __str__(self) -> str:
        return self._format_message()

    def __rich__(self) -> str:
        """Markup used when the error is printed through a rich console."""
        from rich.markup import escape

        parts = [f"[bold red]Error:[/bold red] {escape(self.message)}"]
        for key, value in self.context.items():
            parts.append(f"  [dim]{escape(str(key))}:[/dim] {escape(str(value))}")
        for suggestion in self.suggestions:
            parts.append(f"  [yellow]-[/yellow] {escape(suggestion)}")
        return "\n".join(parts)


class SpecParseError(TspecError):
    """
    A spec file is not valid TOML or holds an invalid value for a known key.

    Example::

        raise SpecParseError(
            "unknown variant `abrt`",
            file_path="tspec.ts.toml",
        )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        file_path: Optional[Union[str, Path]] = None,
    ):
        ctx = context or {}
        if file_path and "file" not in ctx:
            ctx["file"] = str(file_path)
        self.file_path = file_path
        super().__init__(message, ctx, suggestions)


class UnknownKeyError(TspecError):
    """The editor was given a dotted key that is not in the field registry."""

    def __init__(self, key: str, valid_keys: Sequence[str] = ()):
        self.key = key
        self.valid_keys = list(valid_keys)
        message = f"unknown key: {key}"
        if self.valid_keys:
            message += f"\nValid keys: {', '.join(self.valid_keys)}"
        super().__init__(message)


class InvalidValueError(TspecError):
    """A value does not satisfy the constraint registered for its key."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        valid_values: Optional[Sequence[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.key = key
        self.valid_values = list(valid_values) if valid_values is not None else None
        ctx = context or {}
        if key and "key" not in ctx:
            ctx["key"] = key
        super().__init__(message, ctx)


class IndexOutOfBoundsError(TspecError):
    """An array index is past the end of the array."""

    def __init__(self, key: str, index: int, length: int):
        self.key = key
        self.index = index
        self.length = length
        super().__init__(f"index {index} out of bounds for '{key}' (length {length})")


class PathNotFoundError(TspecError):
    """A member, spec file, manifest or binary could not be found."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.path = Path(path) if path is not None else None
        ctx = {"path": str(path)} if path is not None else None
        super().__init__(message, ctx, suggestions)


class ToolchainFailedError(TspecError):
    """A spawned toolchain subprocess exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        command: Optional[Sequence[str]] = None,
    ):
        self.exit_code = exit_code
        self.command = list(command) if command else []
        ctx: Dict[str, Any] = {}
        if exit_code is not None:
            ctx["exit code"] = exit_code
        if self.command:
            ctx["command"] = " ".join(self.command)
        super().__init__(message, ctx)


class SpecIOError(TspecError):
    """Underlying filesystem failure while reading or writing spec files."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = path
        ctx = {"path": str(path)} if path is not None else None
        super().__init__(message, ctx)


class ZeroTestsRanError(TspecError):
    """A test name filter matched nothing, so no test actually executed."""

    def __init__(self, filter_args: Sequence[str]):
        self.filter_args = list(filter_args)
        super().__init__(
            f"0 tests ran (filter: {' '.join(self.filter_args)})",
            suggestions=["Check the test name filter for typos"],
        )


class ConfigurationError(TspecError):
    """A command-line or configuration combination is invalid."""


class ShellGlobWarning(UserWarning):
    """Every spec pattern looked like the result of unquoted shell expansion."""
