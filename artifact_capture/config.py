"""Configuration for artifact capture."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

ENV_PREFIX = "ARTIFACT_CAPTURE_"

ENVIRONMENT_LABELS: Mapping[str, str] = {
    "prod": "PRODUCTION",
    "production": "PRODUCTION",
    "preprod": "PRE-PRODUCTION",
    "pre-prod": "PRE-PRODUCTION",
    "staging": "PRE-PRODUCTION",
}


class CaptureConfig(BaseSettings):
    """Run configuration handed to the router at suite start.

    Values come from keyword arguments first, then ``ARTIFACT_CAPTURE_*``
    environment variables, then the defaults below. The headless flag also
    honours a bare ``HEADLESS`` variable.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    results_dir: Path = Path("allure-results")
    report_dir: Path = Path("allure-report")
    environment: str = "test"
    base_url: str = ""
    browser: str = "chrome"
    headless: bool = Field(
        default=False,
        validation_alias=AliasChoices(f"{ENV_PREFIX}HEADLESS", "HEADLESS", "headless"),
    )
    implicit_wait_seconds: int = 5
    page_load_timeout_seconds: int = 60
    recorder: str = "ffmpeg"
    # Passed to the recorder manifest's config class
    recorder_options: dict[str, Any] = Field(default_factory=dict)

    @property
    def environment_label(self) -> str:
        """Dashboard label for the configured environment."""
        return ENVIRONMENT_LABELS.get(self.environment.strip().lower(), "TEST")

    @property
    def history_source(self) -> Path:
        """History directory of the previously generated report."""
        return self.report_dir / "history"


def load_config(**overrides: Any) -> CaptureConfig:
    """Load configuration, falling back to defaults when it is invalid.

    Unset overrides (``None``) are ignored so command-line options only take
    effect when given. Given overrides survive the fallback; only the
    environment is dropped.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return CaptureConfig(**values)
    except ValidationError as e:
        log.warning(
            "Invalid capture configuration, using defaults (non-headless): %s", e
        )
        return CaptureConfig.model_construct(**values)
