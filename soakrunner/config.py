"""
Application Configuration using Pydantic Settings

Process-level settings come from environment variables (and ``.env``).
The run itself (metrics, timings, compose directory) is described by a YAML
file loaded with ``load_run_config``.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from soakrunner.core.errors import ConfigError
from soakrunner.models.run_config import RunConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ========================================================================
    # Run Settings
    # ========================================================================
    CONFIG_PATH: str = "./config.yaml"
    # Empty disables the JSON report file.
    REPORT_JSON_PATH: str = ""

    # ========================================================================
    # Prometheus Settings
    # ========================================================================
    # The query timeout is enforced server-side; the call timeout bounds the
    # whole HTTP request and should stay above it.
    PROMETHEUS_QUERY_TIMEOUT_SECONDS: float = 5.0
    PROMETHEUS_CALL_TIMEOUT_SECONDS: float = 10.0

    # ========================================================================
    # Environment Settings
    # ========================================================================
    DOCKER_COMPOSE_COMMAND: str = "docker compose"

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(levelprefix)s %(asctime)s - %(message)s"


# Create global settings instance
settings = Settings()


def load_run_config(path: str | Path) -> RunConfig:
    """
    Load and validate a run configuration file.

    Raises:
        ConfigError: If the file cannot be read, parsed, or validated.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"cannot read config {config_path}: {exc}",
            context={"path": str(config_path)},
        ) from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"invalid YAML in {config_path}: {exc}",
            context={"path": str(config_path)},
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"config {config_path} must be a mapping, got {type(data).__name__}",
            context={"path": str(config_path)},
        )

    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            f"invalid config {config_path}: {exc}",
            context={"path": str(config_path), "errors": exc.errors()},
        ) from exc
