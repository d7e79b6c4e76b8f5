"""Environment-based configuration for the pipeline lens."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pipeline lens configuration.

    All settings can be overridden via environment variables with
    PIPELINE_LENS_ prefix. For example:
        PIPELINE_LENS_TARGETS_PATH=/config/targets.json
        PIPELINE_LENS_POLL_INTERVAL_SECONDS=2
    """

    # Targets registry
    targets_path: Path = Path("targets.json")

    # Polling
    poll_interval_seconds: float = 5.0
    config_ttl_seconds: float = 30.0
    http_timeout_seconds: float = 10.0

    # History bounds
    history_points: int = 120
    runtime_history_points: int = 100

    model_config = {"env_prefix": "PIPELINE_LENS_"}


def get_settings() -> Settings:
    """Load settings from the current environment."""
    return Settings()
