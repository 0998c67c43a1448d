"""Patch syntax errors."""

from __future__ import annotations


class PatchSyntaxError(ValueError):
    """Raised when patch text is structurally malformed.

    ``line_index`` is the 0-based index of the offending line, or -1 when the
    problem cannot be tied to a single line.
    """

    def __init__(self, line_index: int, message: str) -> None:
        super().__init__(message)
        self.line_index = line_index
        self.message = message

    def __str__(self) -> str:
        if self.line_index < 0:
            return self.message
        return f"line {self.line_index}: {self.message}"


class MissingSecondHeaderError(PatchSyntaxError):
    """The second file name line is absent or has the wrong prefix."""


class MalformedHunkHeaderError(PatchSyntaxError):
    """A hunk header does not match its fixed pattern."""


class MissingAfterBlockError(PatchSyntaxError):
    """A context hunk ends before its after block header."""


class UnrecognizedLinePrefixError(PatchSyntaxError):
    """Context hunk reconciliation met a prefix combination it cannot merge."""
