from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Ops Job Queue", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=True, description="Debug mode")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Job queue
    job_concurrency: int = Field(
        default=10, ge=1, description="Maximum jobs processing at once"
    )
    job_retry_delay_ms: int = Field(
        default=5000, ge=0, description="Retry delay unit, multiplied by attempts"
    )
    job_max_attempts: int = Field(
        default=3, ge=1, description="Default attempt ceiling per job"
    )
    job_tick_interval_ms: int = Field(
        default=1000, ge=1, description="Scheduler tick period in milliseconds"
    )
    job_cleanup_interval_s: int = Field(
        default=3600, ge=0, description="Periodic cleanup period, 0 disables it"
    )
    job_cleanup_after_ms: int = Field(
        default=24 * 60 * 60 * 1000,
        ge=0,
        description="Age after which terminal jobs are cleaned up",
    )
    job_drain_timeout_s: float = Field(
        default=30, ge=0, description="How long close() waits for in-flight jobs"
    )
    job_autostart: bool = Field(
        default=True, description="Start the tick loop on first submission"
    )

    def model_post_init(self, __context) -> None:
        """Validate settings after initialization."""
        if self.environment == "production" and self.debug:
            raise ValueError(
                "DEBUG=true is not allowed in production environment. "
                "Set DEBUG=false for production deployments."
            )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
