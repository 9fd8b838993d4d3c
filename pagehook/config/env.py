"""
Environment variable support for pagehook configuration.

Values are read from ``PAGEHOOK_*`` variables and converted to the type of
the option they override.
"""

import os
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from .defaults import ENV_PREFIX

T = TypeVar("T")


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a configuration key to an environment variable name.

    ``dispatch.delay_ms`` becomes ``PAGEHOOK_DISPATCH_DELAY_MS``.
    """
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on", "enabled")


def parse_list(value: str, item_type: type = str) -> list[Any]:
    """Parse a comma-separated string into a list."""
    if not value:
        return []

    items = [item.strip() for item in value.split(",")]
    if item_type is bool:
        return [parse_bool(item) for item in items]
    return [item_type(item) for item in items]


def parse_value(value: str, target_type: Any) -> Any:
    """Parse a string value to ``target_type``.

    Handles Optional[...] and list[...] annotations as well as plain types.
    """
    origin = get_origin(target_type)

    if origin is Union:
        non_none_types = [t for t in get_args(target_type) if t is not type(None)]
        if non_none_types:
            return parse_value(value, non_none_types[0])
        return value

    if origin is list:
        args = get_args(target_type)
        return parse_list(value, args[0] if args else str)

    if target_type is bool:
        return parse_bool(value)
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)

    return value


def get_env(
    key: str,
    default: Optional[T] = None,
    target_type: Optional[type] = None,
    prefix: str = ENV_PREFIX,
) -> Optional[Union[T, str]]:
    """Get a configuration value from the environment.

    Args:
        key: Configuration key (e.g. "dispatch.delay_ms")
        default: Value returned when the variable is not set
        target_type: Type to parse into; inferred from ``default`` if omitted
        prefix: Environment variable prefix

    Returns:
        Parsed value or default
    """
    value = os.environ.get(get_env_key(key, prefix))

    if value is None:
        return default

    if target_type is not None:
        return parse_value(value, target_type)
    if default is not None:
        return parse_value(value, type(default))
    return value


# Configuration keys that can be overridden from the environment
ENV_MAPPINGS: dict[str, type] = {
    "dispatch.delay_ms": int,
    "dispatch.repeat_threshold_ms": int,
    "detection.enabled": bool,
    "detection.check_immediately": bool,
    "detection.binding_name": str,
    "bridge.relay_tab_loads": bool,
    "cdp.endpoint": str,
    "cdp.timeout": float,
    "strict_registry": bool,
    "sites_file": str,
    "log_level": str,
}


def load_env_config(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Load configuration from the mapped environment variables.

    Returns:
        Nested dictionary containing only the variables that are set.
    """
    result: dict[str, Any] = {}

    for key, target_type in ENV_MAPPINGS.items():
        value = os.environ.get(get_env_key(key, prefix))
        if value is None:
            continue

        parsed = parse_value(value, target_type)
        if "." in key:
            section, option = key.split(".", 1)
            result.setdefault(section, {})[option] = parsed
        else:
            result[key] = parsed

    return result


__all__ = [
    "ENV_MAPPINGS",
    "get_env",
    "get_env_key",
    "load_env_config",
    "parse_bool",
    "parse_list",
    "parse_value",
]
