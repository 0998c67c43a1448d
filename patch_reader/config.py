"""Configuration loading for patch-reader."""

from __future__ import annotations

import codecs
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAMES = (".patch-reader.toml", "patch-reader.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("patch_reader", "patch-reader")
OUTPUT_FORMATS = {"human", "json"}
ERROR_POLICIES = {"abort", "stop"}


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    on_error: str = "abort"
    encoding: str = "utf-8"
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    source: str | None = None

    @property
    def stop_on_error(self) -> bool:
        return self.on_error == "stop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "on_error": self.on_error,
            "encoding": self.encoding,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or repository-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            "",
            "# abort: a malformed file patch fails the whole run",
            "# stop: keep the file patches read before the error",
            'on_error = "abort"',
            'encoding = "utf-8"',
            "",
            'include = ["src/**"]',
            'exclude = ["docs/**"]',
            "",
        ]
    )


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    format_value = str(mapping.get("format", "human")).lower()
    if format_value not in OUTPUT_FORMATS:
        format_value = "human"

    return AppConfig(
        format=format_value,
        on_error=_as_choice(mapping.get("on_error", "abort"), ERROR_POLICIES, "on_error"),
        encoding=_as_encoding(mapping.get("encoding", "utf-8"), "encoding"),
        include=_as_str_list(mapping.get("include"), "include"),
        exclude=_as_str_list(mapping.get("exclude"), "exclude"),
        source=source,
    )


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_encoding(raw: Any, field_name: str) -> str:
    if not isinstance(raw, str):
        raise ValueError(f"{field_name} must be a string")
    try:
        codecs.lookup(raw)
    except LookupError as exc:
        raise ValueError(f"{field_name} is not a known text encoding: {raw}") from exc
    return raw
