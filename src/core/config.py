"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Analysis tuning (progress cadence, session retention, log output) comes from
config/analysis_config.yaml. All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # AI Providers
    # ==========================================================================
    #
    # Any one of these being set makes the analysis pipeline usable.
    # TIGER_DATABASE_URL enables the database-backed insights; the LLM
    # stages additionally need one of the three API keys.

    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    perplexity_api_key: Optional[str] = Field(
        default=None, description="Perplexity API key"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    tiger_database_url: Optional[str] = Field(
        default=None, description="Tiger (Timescale) database connection URL"
    )

    # Optional provider override (otherwise first configured key wins)
    llm_provider: Optional[str] = Field(
        default=None,
        description="Force LLM provider: groq, perplexity or openai",
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Analysis Configuration (from YAML)
# ============================================================================


class ProgressConfig(BaseModel):
    """Progress simulation cadence.

    The default increment reaches 100 in ~179 ticks, i.e. about three
    minutes at one tick per second.
    """

    tick_interval_seconds: float = Field(
        default=1.0, gt=0, description="Seconds between progress ticks"
    )
    increment: float = Field(
        default=0.56, gt=0, le=100, description="Progress added per tick"
    )
    real_stage_authoritative: bool = Field(
        default=False,
        description="Stop deriving stage from progress once a real stage is reported",
    )


class RetentionConfig(BaseModel):
    """Eviction policy for finished sessions."""

    enabled: bool = Field(default=True, description="Run the session reaper")
    max_age_seconds: float = Field(
        default=3600.0, ge=1, description="Age after which finished sessions are evicted"
    )
    sweep_interval_seconds: float = Field(
        default=300.0, gt=0, description="Seconds between eviction sweeps"
    )


class LoggingConfig(BaseModel):
    """Log output for the service process."""

    level: str = Field(default="INFO", description="Minimum level for service logs")
    logs_dir: str = Field(default="logs", description="Directory for per-run log files")
    runs_to_keep: int = Field(
        default=5, ge=1, description="Number of recent run logs to retain"
    )
    max_field_chars: int = Field(
        default=500,
        ge=20,
        description="Longer code/prompt/response values are truncated in logs",
    )
    quiet_loggers: List[str] = Field(
        default_factory=lambda: ["httpx", "httpcore"],
        description="Third-party loggers held at WARNING",
    )

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


class AnalysisConfig(BaseModel):
    """Complete analysis configuration loaded from analysis_config.yaml."""

    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_analysis_config(config_path: Optional[Path] = None) -> AnalysisConfig:
    """
    Load analysis configuration from YAML file.

    Args:
        config_path: Path to analysis_config.yaml. If None, uses default path.

    Returns:
        AnalysisConfig with validated settings (defaults if no file found)

    Raises:
        pydantic.ValidationError: If config validation fails
    """
    if config_path is None:
        # Default path: config/analysis_config.yaml relative to project root
        check_path = (
            Path(__file__).resolve().parent.parent.parent
            / "config"
            / "analysis_config.yaml"
        )
        if check_path.exists():
            config_path = check_path
        else:
            cwd_config = Path.cwd() / "config" / "analysis_config.yaml"
            if not cwd_config.exists():
                return AnalysisConfig()
            config_path = cwd_config

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return AnalysisConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return AnalysisConfig()

    return AnalysisConfig(**config_data)


# Global settings instance
settings = Settings()

# Global analysis config instance
analysis_config = load_analysis_config()
