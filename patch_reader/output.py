"""Output rendering."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import click

from patch_reader import __version__
from patch_reader.errors import PatchSyntaxError
from patch_reader.patch import FilePatch, PatchHunk, PatchLine


def render_human(patches: list[FilePatch]) -> str:
    """Render a compact colorized summary."""
    added = sum(item.added_count for item in patches)
    removed = sum(item.removed_count for item in patches)
    lines: list[str] = [
        click.style(f"{len(patches)} file(s) changed, +{added} -{removed}", bold=True)
    ]

    for file_patch in patches:
        lines.append(
            f"{click.style(describe_file(file_patch), bold=True)} "
            f"({len(file_patch.hunks)} hunks, "
            f"{click.style(f'+{file_patch.added_count}', fg='green')} "
            f"{click.style(f'-{file_patch.removed_count}', fg='red')})"
        )
        for hunk in file_patch.hunks:
            lines.append(
                f"  @@ before {hunk.start_line_before}-{hunk.end_line_before}, "
                f"after {hunk.start_line_after}-{hunk.end_line_after} @@ "
                f"{len(hunk.lines)} lines"
            )
    return "\n".join(lines)


def render_files(patches: list[FilePatch]) -> str:
    """Render one line per file patch."""
    return "\n".join(describe_file(file_patch) for file_patch in patches)


def describe_file(file_patch: FilePatch) -> str:
    if file_patch.before_name == file_patch.after_name:
        return file_patch.after_name
    return f"{file_patch.before_name} -> {file_patch.after_name}"


def render_json(
    patches: list[FilePatch],
    *,
    input_source: str,
    error: PatchSyntaxError | None = None,
) -> str:
    """Render stable JSON output for automation."""
    payload = build_json_payload(patches, input_source=input_source, error=error)
    return json.dumps(payload, sort_keys=True)


def build_json_payload(
    patches: list[FilePatch],
    *,
    input_source: str,
    error: PatchSyntaxError | None = None,
) -> dict[str, Any]:
    """Build stable JSON payload for automation."""
    meta: dict[str, Any] = {
        "generated_at": datetime.now(tz=UTC)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z"),
        "input_source": input_source,
        "version": __version__,
    }
    return {
        "files": [_serialize_file(item) for item in patches],
        "summary": {
            "files": len(patches),
            "hunks": sum(len(item.hunks) for item in patches),
            "added": sum(item.added_count for item in patches),
            "removed": sum(item.removed_count for item in patches),
        },
        "error": _serialize_error(error) if error is not None else None,
        "meta": meta,
    }


def _serialize_file(file_patch: FilePatch) -> dict[str, Any]:
    return {
        "before_name": file_patch.before_name,
        "after_name": file_patch.after_name,
        "before_version_id": file_patch.before_version_id,
        "after_version_id": file_patch.after_version_id,
        "hunks": [_serialize_hunk(hunk) for hunk in file_patch.hunks],
    }


def _serialize_hunk(hunk: PatchHunk) -> dict[str, Any]:
    return {
        "before": [hunk.start_line_before, hunk.end_line_before],
        "after": [hunk.start_line_after, hunk.end_line_after],
        "lines": [_serialize_line(line) for line in hunk.lines],
    }


def _serialize_line(line: PatchLine) -> dict[str, Any]:
    return {"type": line.kind, "text": line.text}


def _serialize_error(error: PatchSyntaxError) -> dict[str, Any]:
    return {
        "kind": type(error).__name__,
        "line_index": error.line_index,
        "message": error.message,
    }
