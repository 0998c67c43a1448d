"""Output rendering tests."""

from __future__ import annotations

import json

import click

from patch_reader.errors import MalformedHunkHeaderError
from patch_reader.output import render_files, render_human, render_json
from patch_reader.patch import FilePatch, PatchHunk, PatchLine


def test_render_human_summarises_files_and_hunks() -> None:
    output = click.unstyle(render_human([_renamed_patch(), _same_name_patch()]))

    assert "2 file(s) changed, +2 -1" in output
    assert "old.py -> new.py (1 hunks, +1 -1)" in output
    assert "same.py (1 hunks, +1 -0)" in output
    assert "@@ before 3-4, after 3-4 @@ 3 lines" in output


def test_render_files_lists_one_line_per_patch() -> None:
    assert render_files([_renamed_patch(), _same_name_patch()]) == "old.py -> new.py\nsame.py"


def test_render_json_has_stable_schema_keys() -> None:
    payload = json.loads(render_json([_renamed_patch()], input_source="stdin"))

    assert set(payload.keys()) == {"files", "summary", "error", "meta"}
    assert payload["error"] is None
    assert payload["summary"] == {"files": 1, "hunks": 1, "added": 1, "removed": 1}
    assert set(payload["meta"].keys()) == {"generated_at", "input_source", "version"}
    assert payload["meta"]["input_source"] == "stdin"

    first_file = payload["files"][0]
    assert set(first_file.keys()) == {
        "before_name",
        "after_name",
        "before_version_id",
        "after_version_id",
        "hunks",
    }
    assert first_file["before_version_id"] == "r1"
    first_hunk = first_file["hunks"][0]
    assert first_hunk["before"] == [3, 4]
    assert first_hunk["after"] == [3, 4]
    assert first_hunk["lines"][1] == {"type": "remove", "text": "b"}


def test_render_json_includes_error_details() -> None:
    error = MalformedHunkHeaderError(7, "Unknown hunk start syntax")
    payload = json.loads(render_json([], input_source="stdin", error=error))
    assert payload["error"] == {
        "kind": "MalformedHunkHeaderError",
        "line_index": 7,
        "message": "Unknown hunk start syntax",
    }


def _renamed_patch() -> FilePatch:
    return FilePatch(
        before_name="old.py",
        after_name="new.py",
        before_version_id="r1",
        hunks=[
            PatchHunk(
                start_line_before=3,
                end_line_before=4,
                start_line_after=3,
                end_line_after=4,
                lines=[
                    PatchLine(kind="context", text="a"),
                    PatchLine(kind="remove", text="b"),
                    PatchLine(kind="add", text="c"),
                ],
            )
        ],
    )


def _same_name_patch() -> FilePatch:
    return FilePatch(
        before_name="same.py",
        after_name="same.py",
        hunks=[PatchHunk(1, 0, 1, 1, lines=[PatchLine(kind="add", text="x")])],
    )
