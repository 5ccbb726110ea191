"""Configuration management for the noise collector."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import tomllib


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    # Logging severity threshold (INFO/DEBUG/etc.).
    level: str = Field(default="INFO", description="Logging level")
    # Emit JSON if True; otherwise emit a human-readable format.
    json_format: bool = Field(default=True, description="Emit JSON logs")
    # Optional file path for log output; if None, logs go to stdout.
    log_file: str | None = Field(default=None, description="Optional log file path")
    # Maximum size (bytes) before log rotation.
    max_bytes: int = Field(default=1_000_000, description="Max log file size before rotation")
    # Number of backup files to retain.
    backup_count: int = Field(default=3, description="Number of rotated log files to keep")


class MetricsConfig(BaseModel):
    """Metrics/health endpoint configuration."""

    # Serve /metrics, /health and /reading when True.
    enabled: bool = Field(default=False, description="Enable metrics exporter")
    host: str = Field(default="127.0.0.1", description="Metrics host")
    port: int = Field(default=8000, ge=0, le=65535, description="Metrics port")
    # Health turns red when no cycle succeeded within this window.
    freshness_window_s: float = Field(default=60.0, gt=0.0, description="Reading freshness window (seconds)")


class SubmissionConfig(BaseModel):
    """Remote collector endpoint settings."""

    backend_url: str = Field(default="http://localhost:3000", description="Collector base URL")
    timeout_s: float = Field(default=10.0, gt=0.0, description="HTTP request timeout (seconds)")


class ScheduleConfig(BaseModel):
    """Foreground and background trigger settings."""

    foreground_interval_ms: int = Field(default=12_000, gt=0, description="Foreground timer period")
    # The OS will not wake the app more often than every 15 minutes.
    background_min_interval_minutes: int = Field(default=15, ge=15, description="Background wake interval")
    # Cycle budget inside a background wake; None disables the deadline.
    background_deadline_s: float | None = Field(default=25.0, gt=0.0, description="Background cycle budget")


class NoiseConfig(BaseModel):
    """Noise window settings."""

    capture_frames: int = Field(default=100, ge=1, description="Frames observed per window")
    # Leading frames dropped while the audio subsystem warms up.
    calibration_frames: int = Field(default=2, ge=0, description="Frames discarded at start")
    frame_interval_ms: int = Field(default=20, gt=0, description="Audio level frame cadence")
    stall_timeout_ms: int | None = Field(default=None, gt=0, description="Max wait between frames")


class LocationConfig(BaseModel):
    """Location fix settings."""

    timeout_ms: int = Field(default=15_000, gt=0, description="Max wait for a fix")
    max_age_ms: int = Field(default=10_000, ge=0, description="Max age of a cached fix")
    high_accuracy: bool = Field(default=True, description="Request a high accuracy fix")


class PermissionConfig(BaseModel):
    """Permission policy settings."""

    platform: Literal["android", "ios"] = Field(default="android", description="Host platform")
    # Overrides the platform default when set.
    location_policy: Literal["request", "check"] | None = Field(default=None, description="Location policy")


class SimulationConfig(BaseModel):
    """Parameters for the simulated providers used by the daemon."""

    latitude: float = Field(default=52.2297, ge=-90.0, le=90.0)
    longitude: float = Field(default=21.0122, ge=-180.0, le=180.0)
    location_jitter_deg: float = Field(default=0.0005, ge=0.0)
    location_delay_ms: int = Field(default=200, ge=0)
    amplitude_mean: float = Field(default=0.05, ge=0.0)
    amplitude_std: float = Field(default=0.01, ge=0.0)
    # Seconds that stand in for one minute of background interval.
    seconds_per_minute: float = Field(default=60.0, gt=0.0)


class CollectorSettings(BaseSettings):
    """Configuration settings loaded from env or optional TOML."""

    # Environment keys use HUSH_ prefix and "__" nesting.
    model_config = SettingsConfigDict(env_prefix="HUSH_", env_nested_delimiter="__", extra="ignore")

    # Nested configs provide defaults for each subsystem.
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    submission: SubmissionConfig = Field(default_factory=SubmissionConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> "CollectorSettings":
        data = tomllib.loads(Path(path).read_text())
        return cls(**data)
