"""
Default configuration values for pagehook.

Durations are in milliseconds unless the name says otherwise.
"""

# Dispatch defaults
DEFAULT_DISPATCH_DELAY_MS = 2000
DEFAULT_REPEAT_THRESHOLD_MS = 2000

# Detection defaults
DEFAULT_DETECTION_ENABLED = True
DEFAULT_CHECK_IMMEDIATELY = False
DEFAULT_BINDING_NAME = "__pagehookUrlChanged"

# Bridge defaults
DEFAULT_RELAY_TAB_LOADS = True
URL_CHANGED_ACTION = "urlChanged"

# CDP defaults
DEFAULT_CDP_TIMEOUT = 30.0
DEFAULT_CDP_ENDPOINT = "http://127.0.0.1:9222"

# Registry defaults
DEFAULT_STRICT_REGISTRY = False

# File config defaults
DEFAULT_CONFIG_FILENAME = "pagehook.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/pagehook",
    "/etc/pagehook",
]

# Environment variable prefix
ENV_PREFIX = "PAGEHOOK_"
