"""Parsed patch model: file patches, hunks and hunk lines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

DEV_NULL = "/dev/null"

LineKind = Literal["context", "add", "remove"]


@dataclass(slots=True)
class PatchLine:
    """A single line within a hunk, prefix marker stripped."""

    kind: LineKind
    text: str


@dataclass(slots=True)
class PatchHunk:
    """A contiguous change region.

    Line ranges are 1-based and inclusive, taken from the hunk header. They are
    not checked against ``lines``.
    """

    start_line_before: int
    end_line_before: int
    start_line_after: int
    end_line_after: int
    lines: list[PatchLine] = field(default_factory=list)

    def add_line(self, line: PatchLine) -> None:
        self.lines.append(line)

    def count(self, kind: LineKind) -> int:
        return sum(1 for line in self.lines if line.kind == kind)

    @property
    def before_lines(self) -> list[str]:
        """Original-side text reconstructed from the edit script."""
        return [line.text for line in self.lines if line.kind != "add"]

    @property
    def after_lines(self) -> list[str]:
        """New-side text reconstructed from the edit script."""
        return [line.text for line in self.lines if line.kind != "remove"]


@dataclass(slots=True)
class FilePatch:
    """All hunks for one file, bounded by a before/after header pair."""

    before_name: str
    after_name: str
    before_version_id: str | None = None
    after_version_id: str | None = None
    hunks: list[PatchHunk] = field(default_factory=list)

    def add_hunk(self, hunk: PatchHunk) -> None:
        self.hunks.append(hunk)

    @property
    def path(self) -> str:
        """Best-effort canonical path for reporting."""
        if self.after_name and self.after_name != DEV_NULL:
            return self.after_name
        if self.before_name and self.before_name != DEV_NULL:
            return self.before_name
        return "<unknown>"

    @property
    def is_new_file(self) -> bool:
        return self.before_name == DEV_NULL and self.after_name != DEV_NULL

    @property
    def is_deleted_file(self) -> bool:
        return self.after_name == DEV_NULL and self.before_name != DEV_NULL

    @property
    def added_count(self) -> int:
        return sum(hunk.count("add") for hunk in self.hunks)

    @property
    def removed_count(self) -> int:
        return sum(hunk.count("remove") for hunk in self.hunks)
