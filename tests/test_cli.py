"""CLI tests for parse, files and config commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from patch_reader import __version__
from patch_reader.cli import app

runner = CliRunner()

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "patches"

BROKEN_PATCH = "\n".join(
    ["--- a/ok", "+++ b/ok", "@@ -1,1 +1,1 @@", "-x", "+y", "--- a/bad", "+++ b/bad", "@@ x @@", ""]
)


def test_root_help_works() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Parse unified and context diffs" in result.stdout
    assert "parse" in result.stdout
    assert "config-init" in result.stdout


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_parse_human_from_patch_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["parse", "--patch-file", str(FIXTURE_DIR / "multi_file.diff"), "--repo", str(tmp_path)],
    )
    assert result.exit_code == 0
    assert "3 file(s) changed, +3 -2" in result.stdout
    assert "a/two.txt -> b/two.txt (2 hunks, +1 -1)" in result.stdout


def test_parse_json_from_stdin(tmp_path: Path) -> None:
    patch_text = (FIXTURE_DIR / "context.diff").read_text(encoding="utf-8")
    result = runner.invoke(
        app,
        ["parse", "--stdin", "--format", "json", "--repo", str(tmp_path)],
        input=patch_text,
    )
    assert result.exit_code == 0

    payload = json.loads(result.stdout)
    assert payload["error"] is None
    assert payload["meta"]["input_source"] == "stdin"
    assert payload["summary"] == {"files": 1, "hunks": 2, "added": 3, "removed": 2}
    assert payload["files"][0]["after_name"] == "new/greeting.txt"


def test_parse_include_and_exclude_filter_files(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [
            "files",
            "--patch-file",
            str(FIXTURE_DIR / "multi_file.diff"),
            "--repo",
            str(tmp_path),
            "--include",
            "b/t*",
            "--exclude",
            "*three*",
        ],
    )
    assert result.exit_code == 0
    assert result.stdout.strip() == "a/two.txt -> b/two.txt"


def test_parse_aborts_on_syntax_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["parse", "--stdin", "--repo", str(tmp_path)], input=BROKEN_PATCH)
    assert result.exit_code == 1
    assert "error: line 7: Unknown hunk start syntax" in result.output


def test_parse_stop_keeps_files_read_before_error(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["parse", "--stdin", "--on-error", "stop", "--repo", str(tmp_path)],
        input=BROKEN_PATCH,
    )
    assert result.exit_code == 0
    assert "1 file(s) changed, +1 -1" in result.output
    assert "warning: stopped after 1 file patch(es): line 7" in result.output


def test_on_error_policy_from_config(tmp_path: Path) -> None:
    (tmp_path / ".patch-reader.toml").write_text('on_error = "stop"\n', encoding="utf-8")
    result = runner.invoke(app, ["files", "--stdin", "--repo", str(tmp_path)], input=BROKEN_PATCH)
    assert result.exit_code == 0
    assert "a/ok -> b/ok" in result.output


def test_parse_requires_an_input(tmp_path: Path) -> None:
    result = runner.invoke(app, ["parse", "--repo", str(tmp_path)])
    assert result.exit_code == 2


def test_parse_rejects_both_inputs(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [
            "parse",
            "--stdin",
            "--patch-file",
            str(FIXTURE_DIR / "simple.diff"),
            "--repo",
            str(tmp_path),
        ],
        input="",
    )
    assert result.exit_code == 2


def test_parse_rejects_undecodable_file(tmp_path: Path) -> None:
    patch_path = tmp_path / "latin.diff"
    patch_path.write_bytes(b"--- a/caf\xe9\n+++ b/caf\xe9\n")
    result = runner.invoke(
        app, ["parse", "--patch-file", str(patch_path), "--repo", str(tmp_path)]
    )
    assert result.exit_code == 2


def test_config_init_and_validate(tmp_path: Path) -> None:
    out_path = tmp_path / ".patch-reader.toml"
    init_result = runner.invoke(app, ["config-init", "--out", str(out_path)])
    assert init_result.exit_code == 0
    assert out_path.exists()

    again = runner.invoke(app, ["config-init", "--out", str(out_path)])
    assert again.exit_code == 2

    validate = runner.invoke(
        app, ["config-validate", "--repo", str(tmp_path), "--format", "json"]
    )
    assert validate.exit_code == 0
    assert json.loads(validate.stdout) == {"ok": True, "source": str(out_path.resolve())}

    shown = runner.invoke(app, ["config", "--repo", str(tmp_path), "--format", "json"])
    assert shown.exit_code == 0
    assert json.loads(shown.stdout)["on_error"] == "abort"


def test_invalid_config_is_a_usage_error(tmp_path: Path) -> None:
    (tmp_path / ".patch-reader.toml").write_text('on_error = "maybe"\n', encoding="utf-8")
    result = runner.invoke(app, ["config", "--repo", str(tmp_path)])
    assert result.exit_code == 2
