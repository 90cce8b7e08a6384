"""Settings loader for adoc-convert (CLI > env > TOML > defaults)."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, fields
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from adoc_convert.core import config as core_config
from adoc_convert.core import workspace as workspace_mod

CONFIG_FILENAME = "adoc_convert.toml"
CONFIG_ENV = "ADOC_CONVERT_CONFIG"
ENV_PREFIX = "ADOC_CONVERT_"
TEMPLATE_RESOURCE = "template.toml"

# Setting key -> (TOML table, TOML key). The setting key doubles as the env
# suffix, e.g. ADOC_CONVERT_PANDOC_PATH.
_FILE_KEYS: Mapping[str, tuple[str, str]] = {
    "asciidoc_path": ("asciidoc", "path"),
    "asciidoc_backend": ("asciidoc", "backend"),
    "pandoc_path": ("pandoc", "path"),
    "pandoc_input_format": ("pandoc", "input_format"),
    "pandoc_extra_args": ("pandoc", "extra_args"),
    "log_level": ("logging", "level"),
}
_OPTIONAL_KEYS = frozenset({"pandoc_extra_args"})


class ConversionConfigError(RuntimeError):
    """Raised when the config file or environment holds invalid values."""


class ConfigLookupError(KeyError):
    """Raised when a setting needed by a conversion stage is unavailable."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


@dataclass(frozen=True)
class AdocConvertConfig:
    """Resolved settings for one run."""

    asciidoc_path: str = "asciidoc"
    asciidoc_backend: str = "docbook"
    pandoc_path: str = "pandoc"
    pandoc_input_format: str = "docbook"
    pandoc_extra_args: str = ""
    log_level: str = "INFO"

    def lookup(self, key: str) -> str:
        """Return the setting ``key`` or raise :class:`ConfigLookupError`."""

        if key not in _FILE_KEYS:
            raise ConfigLookupError(f"unknown setting '{key}'")
        value = getattr(self, key).strip()
        if not value and key not in _OPTIONAL_KEYS:
            table, name = _FILE_KEYS[key]
            raise ConfigLookupError(
                f"setting '{table}.{name}' is empty; set it in "
                f"{CONFIG_FILENAME} or {ENV_PREFIX}{key.upper()}"
            )
        return value


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced values applied on top of env and file settings."""

    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Loaded settings plus the workspace and file they came from."""

    config: AdocConvertConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load settings applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = config_target(
        layout, config_path=config_path, env=env_map
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(table, parsed)
        except core_config.TomlConfigError as exc:
            raise ConversionConfigError(str(exc)) from exc
        loaded_path = requested_path
    elif config_path is not None or _env_string(env_map, CONFIG_ENV):
        raise ConversionConfigError(f"Config file not found: {requested_path}")

    values: dict[str, str] = {}
    for key, (section, name) in _FILE_KEYS.items():
        candidate: Any = _env_string(env_map, f"{ENV_PREFIX}{key.upper()}")
        if candidate is None:
            candidate = table[section][name]
        values[key] = _coerce_setting(f"{section}.{name}", candidate)

    if overrides.log_level is not None:
        values["log_level"] = _coerce_setting(
            "logging.level", overrides.log_level
        )
    if not values["log_level"]:
        raise ConversionConfigError("logging.level must be a non-empty string.")
    values["log_level"] = values["log_level"].upper()

    return LoadResult(
        config=AdocConvertConfig(**values),
        layout=layout,
        config_path=loaded_path,
    )


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    defaults = {item.name: item.default for item in fields(AdocConvertConfig)}
    table: MutableMapping[str, MutableMapping[str, Any]] = {}
    for key, (section, name) in _FILE_KEYS.items():
        table.setdefault(section, {})[name] = defaults[key]
    return table


def config_target(
    layout: workspace_mod.WorkspaceLayout,
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Path:
    """Return where settings are read from and where ``config init`` writes.

    An explicit ``config_path`` wins over ``$ADOC_CONVERT_CONFIG``, which
    wins over the workspace config directory.
    """

    if config_path is not None:
        return config_path.expanduser()
    env_candidate = _env_string(os.environ if env is None else env, CONFIG_ENV)
    if env_candidate:
        return Path(env_candidate).expanduser()
    return layout.path_for("config") / CONFIG_FILENAME


def config_template() -> str:
    """Return the packaged, fully commented settings template."""

    resource = resources.files("adoc_convert").joinpath(TEMPLATE_RESOURCE)
    return resource.read_text(encoding="utf-8")


def write_config_template(target: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.write_toml_template(
            target, template=config_template(), overwrite=overwrite
        )
    except core_config.TomlConfigError as exc:
        raise ConversionConfigError(str(exc)) from exc


def _coerce_setting(dotted: str, value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if (
        dotted == "pandoc.extra_args"
        and isinstance(value, list)
        and all(isinstance(item, str) for item in value)
    ):
        return shlex.join(value)
    raise ConversionConfigError(f"{dotted} must be a string.")


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(key)
    if raw is None:
        return None
    value = raw.strip()
    return value or None
