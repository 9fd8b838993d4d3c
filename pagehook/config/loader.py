"""
Configuration file loader for pagehook.

Loads configuration, including the site registry, from JSON, YAML or TOML
files and merges it with environment variables and programmatic overrides.
The registry may also live in its own file, named by ``sites_file``.
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

import yaml
from pydantic import ValidationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import PagehookConfig

try:
    import tomllib
except ImportError:  # Python < 3.11
    import tomli as tomllib


class ConfigurationError(Exception):
    """Configuration loading or parsing error."""

    pass


def _load_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_toml(path: Path) -> Any:
    with open(path, "rb") as f:
        return tomllib.load(f)


_READERS: dict[str, Callable[[Path], Any]] = {
    ".json": _load_json,
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
    ".toml": _load_toml,
}

_PARSE_ERRORS = (
    json.JSONDecodeError,
    yaml.YAMLError,
    tomllib.TOMLDecodeError,
    UnicodeDecodeError,
)


def _read(path: Path) -> Any:
    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix or path.name}")
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        return reader(path)
    except _PARSE_ERRORS as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load a configuration mapping from a file, chosen by extension.

    Raises:
        ConfigurationError: If the file is missing, of an unsupported format,
            unparseable or not a mapping
    """
    path = Path(path)
    data = _read(path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return data


def load_sites_file(path: Union[str, Path]) -> list[dict[str, Any]]:
    """Load a dedicated site registry file.

    The file holds either a list of sites or a mapping with a ``sites`` key.
    """
    path = Path(path)
    data = _read(path)

    if isinstance(data, dict):
        data = data.get("sites", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"Site registry in {path} must be a list")
    return data


def _candidates(
    filename: str,
    search_paths: list[str],
    extensions: list[str],
) -> Iterator[Path]:
    for directory in search_paths:
        base = Path(directory).expanduser()
        for ext in extensions:
            yield base / f"{filename}{ext}"


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """Return the first existing ``<filename><ext>`` in the search paths."""
    candidates = _candidates(
        filename,
        DEFAULT_CONFIG_SEARCH_PATHS if search_paths is None else search_paths,
        DEFAULT_CONFIG_EXTENSIONS if extensions is None else extensions,
    )
    return next((path for path in candidates if path.is_file()), None)


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries; later ones take precedence.

    Lists (such as ``sites``) are replaced, not concatenated. The inputs
    are left untouched.
    """
    merged: dict[str, Any] = {}
    for layer in configs:
        _deep_merge(merged, copy.deepcopy(layer))
    return merged


def _deep_merge(target: dict[str, Any], layer: dict[str, Any]) -> None:
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            target[key] = value


def _include_sites_file(data: dict[str, Any], base_dir: Optional[Path]) -> None:
    """Append the sites of ``data["sites_file"]`` to ``data["sites"]``.

    A relative path is taken relative to the configuration file.
    """
    sites_file = data.pop("sites_file", None)
    if not sites_file:
        return

    path = Path(sites_file).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    data["sites"] = list(data.get("sites") or []) + load_sites_file(path)


class ConfigLoader:
    """Configuration loader with support for multiple sources.

    Priority (highest to lowest): programmatic overrides, environment
    variables, configuration file, base layer (e.g. a profile), defaults.
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        search_paths: Optional[list[str]] = None,
        load_env: bool = True,
        auto_find: bool = True,
    ):
        self.config_file = Path(config_file) if config_file else None
        self.search_paths = search_paths or DEFAULT_CONFIG_SEARCH_PATHS
        self.load_env = load_env
        self.auto_find = auto_find
        self.source: Optional[Path] = None
        self._file_config: Optional[dict[str, Any]] = None

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        *,
        base: Optional[dict[str, Any]] = None,
    ) -> PagehookConfig:
        """Load configuration from all sources.

        Args:
            overrides: Values taking precedence over every other source.
            base: Values below the file and the environment.

        Raises:
            ConfigurationError: If an explicit file cannot be loaded or the
                merged configuration is invalid
        """
        layers = [
            base or {},
            self._read_file() or {},
            load_env_config() if self.load_env else {},
            overrides or {},
        ]
        merged = merge_configs(*layers)
        _include_sites_file(merged, self.source.parent if self.source else None)

        try:
            return PagehookConfig.from_dict(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _read_file(self) -> Optional[dict[str, Any]]:
        if self._file_config is None:
            # An explicit file must exist; a searched one is optional
            if self.config_file is not None:
                self.source = self.config_file
            elif self.auto_find:
                self.source = find_config_file(search_paths=self.search_paths)

            if self.source is not None:
                self._file_config = load_file(self.source)
        return self._file_config

    def reload(self) -> PagehookConfig:
        """Reload configuration from all sources."""
        self._file_config = None
        self.source = None
        return self.load()


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
) -> PagehookConfig:
    """Load configuration from a file (or the first one found), env and overrides."""
    return ConfigLoader(config_file=config_file, load_env=load_env).load(overrides)


def save_config(
    config: PagehookConfig,
    path: Union[str, Path],
    format: str = "json",
) -> None:
    """Write a configuration to a JSON or YAML file.

    Callable handlers are written as ``module:qualname`` references.

    Raises:
        ConfigurationError: If the format is not supported
    """
    if format not in ("json", "yaml", "yml"):
        raise ConfigurationError(f"Unsupported output format: {format}")

    data = config.to_dict()
    with open(Path(path), "w", encoding="utf-8") as f:
        if format == "json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


# Built-in configuration profiles
PROFILES: dict[str, dict[str, Any]] = {
    "debug": {
        "log_level": "DEBUG",
        "strict_registry": True,
        "detection": {"check_immediately": True},
    },
    "fast": {
        "dispatch": {"delay_ms": 300, "repeat_threshold_ms": 500},
    },
    "passive": {
        "detection": {"enabled": False},
        "bridge": {"relay_tab_loads": True},
    },
}


def load_profile(name: str) -> dict[str, Any]:
    """Return a copy of a built-in configuration profile.

    Raises:
        ConfigurationError: If the profile does not exist
    """
    if name not in PROFILES:
        raise ConfigurationError(
            f"Unknown profile: {name}. "
            f"Available profiles: {', '.join(PROFILES)}"
        )
    return copy.deepcopy(PROFILES[name])


def load_config_with_profile(
    profile: str,
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> PagehookConfig:
    """Load configuration on top of a profile.

    Merge order: defaults < profile < file < env < overrides.
    """
    loader = ConfigLoader(config_file=config_file)
    return loader.load(
        merge_configs(overrides or {}, {"profile": profile}),
        base=load_profile(profile),
    )


__all__ = [
    "PROFILES",
    "ConfigLoader",
    "ConfigurationError",
    "find_config_file",
    "load_config",
    "load_config_with_profile",
    "load_file",
    "load_profile",
    "load_sites_file",
    "merge_configs",
    "save_config",
]
