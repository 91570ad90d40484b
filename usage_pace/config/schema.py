"""Configuration schema for usage-pace."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from usage_pace.usage.claude_api import DEFAULT_BASE_URL
from usage_pace.usage.models import DEFAULT_METRIC, MetricKind


class APIConfig(BaseModel):
    """Connection settings for the usage endpoint."""

    base_url: str = DEFAULT_BASE_URL
    session_key: str = ""
    organization_id: str = ""
    request_timeout_s: float = 15.0


class MonitorConfig(BaseModel):
    """Polling cadence and the metric shown in the status title."""

    refresh_interval_s: float = 300.0
    selected_metric: str = DEFAULT_METRIC.value

    @field_validator("selected_metric")
    @classmethod
    def _normalize_metric(cls, value: str) -> str:
        # Older preference files stored the display name; unknown or
        # display-only values fall back to the default.
        try:
            metric = MetricKind.parse(value)
        except ValueError:
            return DEFAULT_METRIC.value
        return metric.value if metric.selectable else DEFAULT_METRIC.value

    @property
    def metric(self) -> MetricKind:
        return MetricKind(self.selected_metric)


class Config(BaseSettings):
    """Root configuration for usage-pace."""

    api: APIConfig = Field(default_factory=APIConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)

    model_config = ConfigDict(
        env_prefix="USAGE_PACE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; environment variables win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings
