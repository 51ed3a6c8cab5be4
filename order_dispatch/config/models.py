"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

DurationValue = Union[str, int, float]


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class BodySubtype(str, Enum):
    """MIME subtype of rendered notification bodies."""

    HTML = "html"
    PLAIN = "plain"


def _duration_seconds(value: DurationValue, field_name: str, max_seconds: float) -> float:
    try:
        seconds = parse_duration(value)
        validate_duration_range(seconds, 0.0, max_seconds, field_name=field_name)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return seconds


class DispatchConfig(BaseModel):
    """Retry and polling policy of the dispatch worker."""

    max_attempts: int = Field(
        3, ge=1, le=10, description="Send attempts per job before it is dropped"
    )
    idle_interval: DurationValue = Field(
        "2s", description="Wait between polls of an empty queue"
    )
    retry_delay: DurationValue = Field(
        "5s", description="Fixed delay before a failed job is re-enqueued"
    )
    error_cooldown: DurationValue = Field(
        "5s", description="Pause after an unexpected error in the worker loop"
    )
    startup_delay: DurationValue = Field(
        "3s", description="Delay before the worker's first poll"
    )
    shutdown_timeout: DurationValue = Field(
        "30s", description="How long shutdown waits for the worker thread"
    )

    # Computed fields (seconds)
    idle_interval_seconds: Optional[float] = None
    retry_delay_seconds: Optional[float] = None
    error_cooldown_seconds: Optional[float] = None
    startup_delay_seconds: Optional[float] = None
    shutdown_timeout_seconds: Optional[float] = None

    @model_validator(mode="after")
    def compute_durations(self):
        """Parse duration fields into seconds."""
        self.idle_interval_seconds = _duration_seconds(self.idle_interval, "idle_interval", 300)
        self.retry_delay_seconds = _duration_seconds(self.retry_delay, "retry_delay", 3600)
        self.error_cooldown_seconds = _duration_seconds(
            self.error_cooldown, "error_cooldown", 3600
        )
        self.startup_delay_seconds = _duration_seconds(self.startup_delay, "startup_delay", 300)
        self.shutdown_timeout_seconds = _duration_seconds(
            self.shutdown_timeout, "shutdown_timeout", 3600
        )
        if self.idle_interval_seconds <= 0:
            raise ValueError("idle_interval must be greater than zero")
        return self


class EmailConfig(BaseModel):
    """Delivery channel settings shared by all senders."""

    use_tls: bool = Field(True, description="Use STARTTLS (ignored on implicit-TLS port 465)")
    connection_timeout: int = Field(
        30, ge=5, le=300, description="Connection/request timeout in seconds"
    )
    body_subtype: BodySubtype = Field(
        BodySubtype.HTML, description="MIME subtype of notification bodies"
    )
    user_agent: str = Field(
        "OrderNotificationDispatch/1.0",
        min_length=1,
        description="User-Agent for the HTTP email API channel",
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        """Strip whitespace from user agent."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped

    model_config = {"use_enum_values": True}


class StoreConfig(BaseModel):
    """Storefront identity used when rendering order notifications."""

    name: str = Field("BAZARIO", min_length=1, description="Store name shown in emails")
    currency: str = Field("Rs.", description="Currency label for order totals")
    confirmation_subject_prefix: str = Field("Order Confirmed")
    admin_subject_prefix: str = Field("New Order")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip whitespace from the store name."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Store name cannot be empty or whitespace-only")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the notification dispatcher."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
