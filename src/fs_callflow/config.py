"""Runtime configuration for the call-flow analyzer."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Correlation policy
    weak_anchor_merge_enabled: bool = Field(
        default=False,
        validation_alias="CALLFLOW_WEAK_ANCHOR_MERGE"
    )

    # Processing settings
    max_workers: int = Field(
        default=4,
        ge=1,
        validation_alias="CALLFLOW_MAX_WORKERS"
    )
    render_diagrams: bool = Field(
        default=True,
        validation_alias="CALLFLOW_RENDER_DIAGRAMS"
    )
    template_dir: Path | None = Field(
        default=None,
        validation_alias="CALLFLOW_TEMPLATE_DIR"
    )

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.WARNING,
        validation_alias="CALLFLOW_LOG_LEVEL"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    def to_options(self):
        """Build pipeline options from these settings."""
        from fs_callflow.services.pipeline import AnalysisOptions

        return AnalysisOptions(
            weak_anchor_merge_enabled=self.weak_anchor_merge_enabled,
            max_workers=self.max_workers,
            render_diagrams=self.render_diagrams,
            template_dir=str(self.template_dir) if self.template_dir else None,
        )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
