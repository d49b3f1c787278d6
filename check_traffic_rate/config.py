"""
Configuration for the traffic rate check.

Two layers:

- `Settings`: site-wide defaults loaded with pydantic-settings from
  environment variables (prefix TRAFFIC_RATE_) and a local `.env` file.
- `CheckConfig`: the immutable per-run configuration built from the
  command line. It is constructed once and handed to the core functions.
"""

import re

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from check_traffic_rate.schemas import Direction


class ConfigurationError(ValueError):
    """Raised when the check cannot run with the supplied options."""


class Settings(BaseSettings):
    """
    Site-wide settings.

    Environment variables (with defaults):

    - TRAFFIC_RATE_SNMP_PORT:    UDP port for SNMP (default: 161)
    - TRAFFIC_RATE_SNMP_TIMEOUT: per-request timeout in seconds (default: 5.0)
    - TRAFFIC_RATE_SNMP_RETRIES: per-request retries (default: 1)
    - TRAFFIC_RATE_LOG_LEVEL:    stderr log level when -v is not given
                                 (default: WARNING)
    """

    snmp_port: int = 161
    snmp_timeout: float = 5.0
    snmp_retries: int = 1

    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="TRAFFIC_RATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def _first_error(exc: ValidationError, prefix: str = "") -> str:
    """One-line summary of the first problem pydantic found."""
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err["loc"]) or "config"
    if prefix:
        field = f"{prefix}{field}".upper()
    msg = err["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"invalid {field}: {msg}"


def load_settings() -> Settings:
    """
    Read settings from the environment and `.env`.

    Called once per run from the CLI, so a bad value is reported like any
    other configuration problem instead of failing at import time.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(_first_error(exc, prefix="TRAFFIC_RATE_")) from exc


_OID_SUFFIX = re.compile(r"^\d+(\.\d+)*$")


class CheckConfig(BaseModel):
    """
    Everything one invocation of the check needs.

    Thresholds default to 0, so any positive rate is CRITICAL unless the
    caller passes real values with -w/-c.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    community: str = "public"
    interface: str = "1"
    direction: Direction = Direction.INBOUND
    in_bytes: bool = False
    duration: int = 30
    samples: int = 3
    warning: int = 0
    critical: int = 0

    port: int = 161
    timeout: float = 5.0
    retries: int = 1

    @field_validator("samples")
    @classmethod
    def check_samples(cls, v: int) -> int:
        # a rate needs two points
        if v < 2:
            raise ValueError(f"number of samples must be at least 2, got {v}")
        return v

    @field_validator("duration")
    @classmethod
    def check_duration(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"time must not be negative, got {v}")
        return v

    @field_validator("interface")
    @classmethod
    def check_interface(cls, v: str) -> str:
        v = v.strip()
        if not _OID_SUFFIX.match(v):
            raise ValueError(f"interface must be a numeric index, got {v!r}")
        return v

    @field_validator("port")
    @classmethod
    def check_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port out of range: {v}")
        return v

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout must be positive, got {v}")
        return v

    @field_validator("retries")
    @classmethod
    def check_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"retries must not be negative, got {v}")
        return v

    @property
    def interval(self) -> float:
        """Seconds to sleep between two consecutive reads."""
        return self.duration / (self.samples - 1)

    @classmethod
    def build(cls, **values) -> "CheckConfig":
        """
        Construct a config, turning pydantic's multi-line validation report
        into a one-line `ConfigurationError`.
        """
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(_first_error(exc)) from exc
