"""
Configuration options classes for pagehook.

Strongly-typed option classes for dispatch timing, change detection, the
navigation bridge, the CDP transport and the site registry.
"""

from typing import Any, Callable, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    field_serializer,
    field_validator,
)

from pagehook.models import DEFAULT_HOST_STRATEGIES, HostMatch, MatchType

from .defaults import (
    DEFAULT_BINDING_NAME,
    DEFAULT_CDP_ENDPOINT,
    DEFAULT_CDP_TIMEOUT,
    DEFAULT_CHECK_IMMEDIATELY,
    DEFAULT_DETECTION_ENABLED,
    DEFAULT_DISPATCH_DELAY_MS,
    DEFAULT_RELAY_TAB_LOADS,
    DEFAULT_REPEAT_THRESHOLD_MS,
    DEFAULT_STRICT_REGISTRY,
)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class RouteConfig(BaseModel):
    """One route of a site in the registry."""

    path: str = Field(..., description="Route pattern")
    handler: Union[str, Callable[..., Any]] = Field(
        ..., description="Handler reference 'module:function' or a callable"
    )
    match: Optional[MatchType] = Field(
        None, description="Match strategy, inferred from the pattern when omitted"
    )
    name: Optional[str] = Field(None, description="Name used in logs")

    @field_validator("match", mode="before")
    @classmethod
    def normalize_match(cls, v: Any) -> Any:
        """Accept match types in any case, with dashes or underscores."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @field_serializer("handler")
    def serialize_handler(self, v: Union[str, Callable[..., Any]]) -> str:
        if isinstance(v, str):
            return v
        return f"{v.__module__}:{v.__qualname__}"


class SiteConfig(BaseModel):
    """A site entry in the registry."""

    url: str = Field(
        ...,
        validation_alias=AliasChoices("url", "host", "host_match"),
        description="Host the routes apply to",
    )
    routes: list[RouteConfig] = Field(default_factory=list)
    host_strategies: list[HostMatch] = Field(
        default_factory=lambda: list(DEFAULT_HOST_STRATEGIES),
        description="Host comparisons to try",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("site host must not be empty")
        return v


class DispatchOptions(BaseModel):
    """Debounce and duplicate-suppression timing."""

    delay_ms: int = Field(
        DEFAULT_DISPATCH_DELAY_MS, ge=0, description="Debounce delay in ms"
    )
    repeat_threshold_ms: int = Field(
        DEFAULT_REPEAT_THRESHOLD_MS,
        ge=0,
        description="Window in ms in which a repeated URL is dropped",
    )


class DetectionOptions(BaseModel):
    """In-page navigation detection options."""

    enabled: bool = Field(
        DEFAULT_DETECTION_ENABLED, description="Install history hooks"
    )
    check_immediately: bool = Field(
        DEFAULT_CHECK_IMMEDIATELY, description="Signal the current URL on start"
    )
    binding_name: str = Field(
        DEFAULT_BINDING_NAME, description="Runtime binding used by the hooks"
    )

    @field_validator("binding_name")
    @classmethod
    def validate_binding_name(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"binding name must be a JS identifier: {v!r}")
        return v


class BridgeOptions(BaseModel):
    """Cross-context navigation bridge options."""

    relay_tab_loads: bool = Field(
        DEFAULT_RELAY_TAB_LOADS, description="Forward tab load completion"
    )


class CDPOptions(BaseModel):
    """CDP transport options."""

    endpoint: str = Field(
        DEFAULT_CDP_ENDPOINT,
        description="Browser websocket URL or http://host:port of the debugger",
    )
    timeout: float = Field(
        DEFAULT_CDP_TIMEOUT, gt=0, description="Command timeout in seconds"
    )


class PagehookConfig(BaseModel):
    """Main configuration class combining all options."""

    dispatch: DispatchOptions = Field(default_factory=DispatchOptions)
    detection: DetectionOptions = Field(default_factory=DetectionOptions)
    bridge: BridgeOptions = Field(default_factory=BridgeOptions)
    cdp: CDPOptions = Field(default_factory=CDPOptions)
    sites: list[SiteConfig] = Field(default_factory=list)
    strict_registry: bool = Field(
        DEFAULT_STRICT_REGISTRY,
        description="Raise on unresolvable handlers and invalid patterns",
    )
    log_level: Optional[str] = Field(None, description="Level for the pagehook logger")
    profile: Optional[str] = Field(None, description="Configuration profile name")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PagehookConfig":
        """Create configuration from dictionary."""
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json", exclude_none=True)
