"""Tests for the parsed patch model."""

from __future__ import annotations

from patch_reader.patch import FilePatch, PatchHunk, PatchLine


def test_new_and_deleted_file_detection() -> None:
    created = FilePatch(before_name="/dev/null", after_name="b/docs/new.md")
    assert created.is_new_file is True
    assert created.is_deleted_file is False
    assert created.path == "b/docs/new.md"

    deleted = FilePatch(before_name="a/legacy.txt", after_name="/dev/null")
    assert deleted.is_deleted_file is True
    assert deleted.is_new_file is False
    assert deleted.path == "a/legacy.txt"

    assert FilePatch(before_name="/dev/null", after_name="/dev/null").path == "<unknown>"


def test_hunk_counts_and_sides() -> None:
    hunk = PatchHunk(start_line_before=5, end_line_before=6, start_line_after=5, end_line_after=6)
    for kind, text in (("context", "a"), ("remove", "b"), ("add", "c")):
        hunk.add_line(PatchLine(kind=kind, text=text))

    file_patch = FilePatch(before_name="x", after_name="x")
    file_patch.add_hunk(hunk)
    file_patch.add_hunk(PatchHunk(9, 8, 9, 9, lines=[PatchLine(kind="add", text="d")]))

    assert hunk.count("context") == 1
    assert hunk.before_lines == ["a", "b"]
    assert hunk.after_lines == ["a", "c"]
    assert file_patch.added_count == 2
    assert file_patch.removed_count == 1
