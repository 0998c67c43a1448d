"""CLI entrypoint for patch-reader."""

from __future__ import annotations

import fnmatch
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from patch_reader import __version__
from patch_reader.config import AppConfig, default_config_template, load_app_config
from patch_reader.errors import PatchSyntaxError
from patch_reader.output import render_files, render_human, render_json
from patch_reader.patch import FilePatch
from patch_reader.reader import PatchReader

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="patch-reader",
    no_args_is_help=True,
    help="Parse unified and context diffs into files, hunks and lines.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Root command callback."""
    _ = version
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("parse")
def parse_command(
    patch_file: Annotated[Path | None, typer.Option(help="Path to patch file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read patch from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Directory to look up config in.")] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    on_error: Annotated[
        str | None,
        typer.Option(help="On a syntax error: abort|stop.", show_default="abort"),
    ] = None,
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Parse a patch and print its files and hunks."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = _choice_or_default(
        value=format, default=app_config.format, allowed={"human", "json"}, field_name="--format"
    )
    error_policy = _choice_or_default(
        value=on_error,
        default=app_config.on_error,
        allowed={"abort", "stop"},
        field_name="--on-error",
    )

    parse_ctx = _prepare_parse_context(
        patch_file=patch_file,
        stdin=stdin,
        include=include,
        exclude=exclude,
        stop_on_error=error_policy == "stop",
        app_config=app_config,
    )

    if output_format == "json":
        typer.echo(
            render_json(
                parse_ctx.patches,
                input_source=parse_ctx.input_source,
                error=parse_ctx.error,
            )
        )
    elif not parse_ctx.aborted:
        typer.echo(render_human(parse_ctx.patches))
    _report_error(parse_ctx)


@app.command("files")
def files_command(
    patch_file: Annotated[Path | None, typer.Option(help="Path to patch file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read patch from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Directory to look up config in.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List the files a patch touches."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    parse_ctx = _prepare_parse_context(
        patch_file=patch_file,
        stdin=stdin,
        include=include,
        exclude=exclude,
        stop_on_error=app_config.stop_on_error,
        app_config=app_config,
    )

    if output_format == "json":
        payload = {
            "files": [
                {"before_name": item.before_name, "after_name": item.after_name}
                for item in parse_ctx.patches
            ]
        }
        typer.echo(json.dumps(payload, sort_keys=True))
    elif parse_ctx.patches:
        typer.echo(render_files(parse_ctx.patches))
    _report_error(parse_ctx)


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Directory to look up config in.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    payload = _load_config_or_raise(repo, config_file).to_dict()
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- on_error: {payload['on_error']}",
        f"- encoding: {payload['encoding']}",
        f"- include: {payload['include']}",
        f"- exclude: {payload['exclude']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".patch-reader.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    repo: Annotated[Path, typer.Option(help="Directory to look up config in.")] = Path("."),
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = Path(".patch-reader.toml"),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    payload = {"ok": True, "source": app_config.source}
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo("\n".join(["Config is valid.", f"- source: {payload['source']}"]))


def main() -> None:
    """Console script entrypoint."""
    app()


def _resolve_patch_input(
    *,
    patch_file: Path | None,
    stdin: bool,
    encoding: str,
) -> tuple[str, str]:
    if patch_file is not None and stdin:
        raise typer.BadParameter("Use either --patch-file or --stdin, not both.")

    if patch_file is not None:
        try:
            text = patch_file.read_bytes().decode(encoding)
        except OSError as exc:
            raise typer.BadParameter(str(exc), param_hint="--patch-file") from exc
        except UnicodeDecodeError as exc:
            raise typer.BadParameter(
                f"Cannot decode {patch_file} as {encoding}: {exc}", param_hint="--patch-file"
            ) from exc
        return (text, f"patch_file:{patch_file}")

    if stdin:
        return (sys.stdin.read(), "stdin")

    raise typer.BadParameter("Provide --patch-file or --stdin.")


def _filter_patches(
    patches: list[FilePatch], *, includes: list[str], excludes: list[str]
) -> list[FilePatch]:
    filtered: list[FilePatch] = []
    for file_patch in patches:
        path = file_patch.path
        if includes and not any(fnmatch.fnmatch(path, pattern) for pattern in includes):
            continue
        if excludes and any(fnmatch.fnmatch(path, pattern) for pattern in excludes):
            continue
        filtered.append(file_patch)
    return filtered


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _choice_or_default(
    *,
    value: str | None,
    default: str,
    allowed: set[str],
    field_name: str,
) -> str:
    resolved = (value or default).lower()
    if resolved not in allowed:
        choices = ", ".join(sorted(allowed))
        raise typer.BadParameter(f"{field_name} must be one of: {choices}", param_hint=field_name)
    return resolved


def _report_error(parse_ctx: _ParseContext) -> None:
    if parse_ctx.error is None:
        return
    if parse_ctx.aborted:
        typer.echo(f"error: {parse_ctx.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(
        f"warning: stopped after {len(parse_ctx.patches)} file patch(es): {parse_ctx.error}",
        err=True,
    )


class _ParseContext:
    """Resolved parse inputs and outputs for shared command flows."""

    def __init__(
        self,
        *,
        patches: list[FilePatch],
        input_source: str,
        error: PatchSyntaxError | None,
        aborted: bool,
    ) -> None:
        self.patches = patches
        self.input_source = input_source
        self.error = error
        self.aborted = aborted


def _prepare_parse_context(
    *,
    patch_file: Path | None,
    stdin: bool,
    include: list[str] | None,
    exclude: list[str] | None,
    stop_on_error: bool,
    app_config: AppConfig,
) -> _ParseContext:
    patch_text, input_source = _resolve_patch_input(
        patch_file=patch_file,
        stdin=stdin,
        encoding=app_config.encoding,
    )
    include_patterns = include if include is not None else app_config.include
    exclude_patterns = exclude if exclude is not None else app_config.exclude

    reader = PatchReader.from_text(patch_text)
    try:
        patches = reader.read_all(stop_on_error=stop_on_error)
    except PatchSyntaxError as exc:
        logger.debug("Aborting parse of %s: %s", input_source, exc)
        return _ParseContext(patches=[], input_source=input_source, error=exc, aborted=True)

    return _ParseContext(
        patches=_filter_patches(patches, includes=include_patterns, excludes=exclude_patterns),
        input_source=input_source,
        error=reader.error,
        aborted=False,
    )
