"""Unified and context patch reader."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from re import Pattern, compile
from typing import Literal

from patch_reader.errors import (
    MalformedHunkHeaderError,
    MissingAfterBlockError,
    MissingSecondHeaderError,
    PatchSyntaxError,
    UnrecognizedLinePrefixError,
)
from patch_reader.patch import FilePatch, PatchHunk, PatchLine

logger = logging.getLogger(__name__)

DiffFormat = Literal["unified", "context"]
ContextMarker = Literal["context", "remove", "add", "changed"]

FIRST_HEADER_PREFIXES: dict[DiffFormat, str] = {"unified": "--- ", "context": "*** "}
SECOND_HEADER_PREFIXES: dict[DiffFormat, str] = {"unified": "+++ ", "context": "--- "}
UNIFIED_HUNK_PREFIX = "@@ "
CONTEXT_HUNK_PREFIX = "*" * 15
CONTEXT_MARKERS: dict[str, ContextMarker] = {
    "  ": "context",
    "- ": "remove",
    "+ ": "add",
    "! ": "changed",
}

UNIFIED_HUNK_HEADER_RE = compile(r"@@ -(\d+),(\d+) \+(\d+),(\d+) @@")
CONTEXT_BEFORE_HEADER_RE = compile(r"\*\*\* (\d+),(\d+) \*\*\*\*")
CONTEXT_AFTER_HEADER_RE = compile(r"--- (\d+),(\d+) ----")
LINE_BREAK_RE = compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split on CRLF, CR or LF; a final terminator does not add an empty line."""
    lines = LINE_BREAK_RE.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class PatchReader:
    """One parse session over an immutable sequence of patch lines.

    Call :meth:`read_next_patch` repeatedly; each call returns the next file
    patch or ``None`` once input is exhausted. The diff format is detected from
    the first file header and stays fixed for the rest of the session.
    """

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = tuple(lines)
        self._index = 0
        self.diff_format: DiffFormat | None = None
        self.error: PatchSyntaxError | None = None

    @classmethod
    def from_text(cls, text: str) -> PatchReader:
        return cls(split_lines(text))

    @property
    def line_index(self) -> int:
        """Index of the next unconsumed line."""
        return self._index

    def __iter__(self) -> Iterator[FilePatch]:
        while True:
            file_patch = self.read_next_patch()
            if file_patch is None:
                return
            yield file_patch

    def read_all(self, *, stop_on_error: bool = False) -> list[FilePatch]:
        """Read every remaining file patch.

        With ``stop_on_error`` a syntax error ends the read: the patches read so
        far are returned and the error is kept on :attr:`error`.
        """
        patches: list[FilePatch] = []
        while True:
            try:
                file_patch = self.read_next_patch()
            except PatchSyntaxError as exc:
                if not stop_on_error:
                    raise
                logger.debug("Stopping after %d file patch(es): %s", len(patches), exc)
                self.error = exc
                return patches
            if file_patch is None:
                return patches
            patches.append(file_patch)

    def read_next_patch(self) -> FilePatch | None:
        """Return the next file patch, or ``None`` when input is exhausted.

        Raises:
            PatchSyntaxError: If the next file patch is malformed. The cursor is
                left on the offending line.
        """
        while self._index < len(self._lines):
            diff_format = self._sniff_format(self._lines[self._index])
            if diff_format is not None:
                return self._read_patch(diff_format)
            self._index += 1
        return None

    def _sniff_format(self, line: str) -> DiffFormat | None:
        for diff_format, prefix in FIRST_HEADER_PREFIXES.items():
            if self.diff_format not in (None, diff_format):
                continue
            if line.startswith(prefix):
                if self.diff_format is None:
                    logger.debug("Detected %s diff format at line %d", diff_format, self._index)
                    self.diff_format = diff_format
                return diff_format
        return None

    def _read_patch(self, diff_format: DiffFormat) -> FilePatch:
        before_name, before_version_id = _extract_file_name(self._lines[self._index])
        self._index += 1
        if not self._current_startswith(SECOND_HEADER_PREFIXES[diff_format]):
            raise MissingSecondHeaderError(self._index, "Second file name expected")
        after_name, after_version_id = _extract_file_name(self._lines[self._index])
        self._index += 1

        file_patch = FilePatch(
            before_name=before_name,
            after_name=after_name,
            before_version_id=before_version_id,
            after_version_id=after_version_id,
        )
        read_hunk = self._read_unified_hunk if diff_format == "unified" else self._read_context_hunk
        while self._index < len(self._lines):
            hunk = read_hunk()
            if hunk is None:
                break
            file_patch.add_hunk(hunk)

        logger.debug(
            "Read file patch %s -> %s with %d hunk(s)",
            before_name,
            after_name,
            len(file_patch.hunks),
        )
        return file_patch

    def _read_unified_hunk(self) -> PatchHunk | None:
        if not self._skip_to_hunk(UNIFIED_HUNK_PREFIX, FIRST_HEADER_PREFIXES["unified"]):
            return None

        match = UNIFIED_HUNK_HEADER_RE.fullmatch(self._lines[self._index])
        if match is None:
            raise MalformedHunkHeaderError(self._index, "Unknown hunk start syntax")
        start_before, count_before, start_after, count_after = (
            int(value) for value in match.groups()
        )
        hunk = PatchHunk(
            start_line_before=start_before,
            end_line_before=start_before + count_before - 1,
            start_line_after=start_after,
            end_line_after=start_after + count_after - 1,
        )
        self._index += 1

        while self._index < len(self._lines) and not self._at_unified_file_header():
            line = _parse_unified_line(self._lines[self._index])
            if line is None:
                break
            hunk.add_line(line)
            self._index += 1
        return hunk

    def _at_unified_file_header(self) -> bool:
        # "--- " directly followed by "+++ " opens the next file, not a removal.
        if not self._lines[self._index].startswith(FIRST_HEADER_PREFIXES["unified"]):
            return False
        next_index = self._index + 1
        return next_index < len(self._lines) and self._lines[next_index].startswith(
            SECOND_HEADER_PREFIXES["unified"]
        )

    def _read_context_hunk(self) -> PatchHunk | None:
        if not self._skip_to_hunk(CONTEXT_HUNK_PREFIX, FIRST_HEADER_PREFIXES["context"]):
            return None
        self._index += 1

        before_range = self._match_range_header(CONTEXT_BEFORE_HEADER_RE)
        self._index += 1
        before_lines = self._read_context_lines()

        if self._index >= len(self._lines):
            raise MissingAfterBlockError(self._index, "Missing after hunk")
        after_range = self._match_range_header(CONTEXT_AFTER_HEADER_RE)
        self._index += 1
        after_lines = self._read_context_lines()

        return PatchHunk(
            start_line_before=before_range[0],
            end_line_before=before_range[1],
            start_line_after=after_range[0],
            end_line_after=after_range[1],
            lines=reconcile_context_lines(before_lines, after_lines),
        )

    def _match_range_header(self, pattern: Pattern[str]) -> tuple[int, int]:
        match = None
        if self._index < len(self._lines):
            match = pattern.fullmatch(self._lines[self._index])
        if match is None:
            raise MalformedHunkHeaderError(self._index, "Unknown before hunk start syntax")
        return (int(match.group(1)), int(match.group(2)))

    def _read_context_lines(self) -> list[str]:
        lines: list[str] = []
        while self._index < len(self._lines):
            line = self._lines[self._index]
            if line[:2] not in CONTEXT_MARKERS:
                break
            lines.append(line)
            self._index += 1
        return lines

    def _skip_to_hunk(self, hunk_prefix: str, file_prefix: str) -> bool:
        while self._index < len(self._lines):
            line = self._lines[self._index]
            if line.startswith(file_prefix):
                return False
            if line.startswith(hunk_prefix):
                return True
            self._index += 1
        return False

    def _current_startswith(self, prefix: str) -> bool:
        return self._index < len(self._lines) and self._lines[self._index].startswith(prefix)


def reconcile_context_lines(before_lines: list[str], after_lines: list[str]) -> list[PatchLine]:
    """Merge the before and after blocks of a context hunk into one edit script.

    Lines must carry their two-character context-diff marker. A block of
    changed (``!``) lines is emitted as all of its removals followed by all of
    the matching additions.

    Raises:
        UnrecognizedLinePrefixError: If the two blocks cannot be merged.
    """
    if not before_lines:
        return [_parse_context_line(line, "add") for line in after_lines]
    if not after_lines:
        return [_parse_context_line(line, "remove") for line in before_lines]

    merged: list[PatchLine] = []
    before_pos = 0
    after_pos = 0
    while before_pos < len(before_lines) or after_pos < len(after_lines):
        before_marker = _marker_at(before_lines, before_pos)
        after_marker = _marker_at(after_lines, after_pos)

        if before_marker == "context" and after_marker == "context":
            merged.append(PatchLine(kind="context", text=before_lines[before_pos][2:]))
            before_pos += 1
            after_pos += 1
        elif before_marker == "remove":
            merged.append(PatchLine(kind="remove", text=before_lines[before_pos][2:]))
            before_pos += 1
        elif after_marker == "add":
            merged.append(PatchLine(kind="add", text=after_lines[after_pos][2:]))
            after_pos += 1
        elif before_marker == "changed" and after_marker == "changed":
            while _marker_at(before_lines, before_pos) == "changed":
                merged.append(PatchLine(kind="remove", text=before_lines[before_pos][2:]))
                before_pos += 1
            while _marker_at(after_lines, after_pos) == "changed":
                merged.append(PatchLine(kind="add", text=after_lines[after_pos][2:]))
                after_pos += 1
        else:
            raise UnrecognizedLinePrefixError(-1, "Unknown line prefix")
    return merged


def read_patch_text(text: str, *, stop_on_error: bool = False) -> list[FilePatch]:
    """Parse every file patch in decoded patch text."""
    return PatchReader.from_text(text).read_all(stop_on_error=stop_on_error)


def read_patch_file(
    path: Path, *, encoding: str = "utf-8", stop_on_error: bool = False
) -> list[FilePatch]:
    """Decode a patch file and parse every file patch in it."""
    text = path.read_bytes().decode(encoding)
    return read_patch_text(text, stop_on_error=stop_on_error)


def _marker_at(lines: list[str], pos: int) -> ContextMarker | None:
    if pos >= len(lines):
        return None
    return CONTEXT_MARKERS.get(lines[pos][:2])


def _parse_context_line(line: str, changed_kind: Literal["add", "remove"]) -> PatchLine:
    # Only one block is present: context stays context, everything else is a change.
    if CONTEXT_MARKERS.get(line[:2]) == "context":
        return PatchLine(kind="context", text=line[2:])
    return PatchLine(kind=changed_kind, text=line[2:])


def _parse_unified_line(line: str) -> PatchLine | None:
    if line.startswith("+"):
        return PatchLine(kind="add", text=line[1:])
    if line.startswith("-"):
        return PatchLine(kind="remove", text=line[1:])
    if line.startswith(" "):
        return PatchLine(kind="context", text=line[1:])
    return None


def _extract_file_name(line: str) -> tuple[str, str | None]:
    name = line[4:]
    split_at = name.find("\t")
    if split_at < 0:
        split_at = name.find(" ")
    if split_at < 0:
        return (name, None)
    version_id = name[split_at:].strip()
    return (name[:split_at], version_id or None)
