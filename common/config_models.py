"""
Pydantic models for global configuration structure.
This module defines all the nested configuration models used by the Config class.
Each model corresponds to a section in the global_config.yaml file and provides
type validation and structure for the configuration data.
"""

from pydantic import BaseModel


class PulseEndpointsConfig(BaseModel):
    """Upstream endpoint paths, relative to the API base URL."""

    product: str
    fonts: str
    colours: str
    templates: str
    template_thumbnail: str
    designs: str
    render: str


class PulseTimeoutConfig(BaseModel):
    """Timeout configuration for upstream requests."""

    connect_timeout_seconds: float
    read_timeout_seconds: float


class PulseRetryConfig(BaseModel):
    """Retry configuration for idempotent upstream requests."""

    max_attempts: int
    backoff_factor: float


class PulseConfig(BaseModel):
    """Upstream personalization gateway configuration."""

    api_base_url: str
    company: str
    asset_host: str
    asset_host_placeholder: str
    endpoints: PulseEndpointsConfig
    timeout: PulseTimeoutConfig
    retry: PulseRetryConfig


class DesignerConfig(BaseModel):
    """Catalog filtering and edit-state defaults."""

    template_prefix: str
    font_capability_tag: str
    default_order_type: str
    default_font: str
    default_colour_code: str


class RenderConfig(BaseModel):
    """Global parameters sent with every render request."""

    background_colour: str
    render_on_product: bool
    dpi: int


class PreviewConfig(BaseModel):
    """Preview pipeline timing."""

    debounce_seconds: float
    indicator_timeout_seconds: float
    cancel_superseded: bool


class LoggingLocationConfig(BaseModel):
    """Location information display configuration for logging."""

    enabled: bool
    show_file: bool
    show_function: bool
    show_line: bool
    show_for_info: bool
    show_for_debug: bool
    show_for_warning: bool
    show_for_error: bool


class LoggingFormatConfig(BaseModel):
    """Logging format configuration."""

    show_time: bool
    show_session_id: bool
    show_variant_id: bool
    location: LoggingLocationConfig


class LoggingLevelsConfig(BaseModel):
    """Logging level configuration."""

    debug: bool
    info: bool
    warning: bool
    error: bool
    critical: bool


class LoggingConfig(BaseModel):
    """Complete logging configuration."""

    verbose: bool
    format: LoggingFormatConfig
    levels: LoggingLevelsConfig


class ServerConfig(BaseModel):
    """Server configuration."""

    allowed_origins: list[str]
