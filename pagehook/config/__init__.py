"""
Configuration module for pagehook.

This module provides:
- Strongly-typed option classes (DispatchOptions, DetectionOptions, ...)
- Configuration file loading (JSON, YAML, TOML), including the site registry
- Environment variable overrides
- Built-in profiles (debug, fast, passive)

Example usage:
    from pagehook.config import PagehookConfig, load_config

    # Load from file with environment overrides
    config = load_config("pagehook.config.yaml")

    # Create programmatically
    config = PagehookConfig(
        dispatch={"delay_ms": 500},
        sites=[{
            "url": "shop.example.com",
            "routes": [{"path": "/cart", "handler": "myhooks.shop:on_cart"}],
        }],
    )

Environment variables:
    PAGEHOOK_DISPATCH_DELAY_MS=500
    PAGEHOOK_DETECTION_CHECK_IMMEDIATELY=true
    PAGEHOOK_CDP_ENDPOINT=http://127.0.0.1:9222
    PAGEHOOK_LOG_LEVEL=debug
    PAGEHOOK_SITES_FILE=/etc/pagehook/sites.yaml
"""

from .defaults import (
    DEFAULT_BINDING_NAME,
    DEFAULT_CDP_ENDPOINT,
    DEFAULT_CDP_TIMEOUT,
    DEFAULT_DISPATCH_DELAY_MS,
    DEFAULT_REPEAT_THRESHOLD_MS,
    ENV_PREFIX,
    URL_CHANGED_ACTION,
)
from .env import (
    ENV_MAPPINGS,
    get_env,
    get_env_key,
    load_env_config,
)
from .loader import (
    PROFILES,
    ConfigLoader,
    ConfigurationError,
    find_config_file,
    load_config,
    load_config_with_profile,
    load_file,
    load_profile,
    load_sites_file,
    merge_configs,
    save_config,
)
from .options import (
    BridgeOptions,
    CDPOptions,
    DetectionOptions,
    DispatchOptions,
    PagehookConfig,
    RouteConfig,
    SiteConfig,
)

__all__ = [
    # Main configuration class
    "PagehookConfig",
    # Option classes
    "BridgeOptions",
    "CDPOptions",
    "DetectionOptions",
    "DispatchOptions",
    "RouteConfig",
    "SiteConfig",
    # Loader functions
    "ConfigLoader",
    "ConfigurationError",
    "PROFILES",
    "find_config_file",
    "load_config",
    "load_config_with_profile",
    "load_file",
    "load_profile",
    "load_sites_file",
    "merge_configs",
    "save_config",
    # Environment functions
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    "get_env",
    "get_env_key",
    "load_env_config",
    # Default values
    "DEFAULT_BINDING_NAME",
    "DEFAULT_CDP_ENDPOINT",
    "DEFAULT_CDP_TIMEOUT",
    "DEFAULT_DISPATCH_DELAY_MS",
    "DEFAULT_REPEAT_THRESHOLD_MS",
    "URL_CHANGED_ACTION",
]
