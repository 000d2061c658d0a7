"""
Configuration management for the pediatric BCI game backend.
Loads settings from environment variables.
"""

from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "bci-game"
    app_version: str = "0.1.0"
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    workers: int = 1
    cors_allow_origins: List[str] = ["*"]
    cors_allow_credentials: bool = False

    # Database
    database_url: str = "sqlite:///./data/bci_game.db"
    database_echo: bool = False

    # Simulated EEG epochs
    eeg_sampling_rate: int = 250  # Hz
    eeg_epoch_duration_ms: int = 1000
    eeg_noise_level: float = 0.5  # 0-1
    eeg_seed: int | None = None

    # Classifier
    classifier_mode: Literal["default", "trained"] = "default"
    classifier_weights: List[float] = [2.5, 3.0, 0.5]  # [mean, peak, latency]
    classifier_bias: float = -1.2
    classifier_threshold: float = 0.5
    classifier_training_targets: int = 30
    classifier_training_nontargets: int = 30

    # Decision logic
    smoothing_window: int = 5
    recent_accuracy_window: int = 10

    # Calibration defaults for new sessions
    calibration_flash_speed: float = 1.0
    calibration_object_count: int = 3
    calibration_recent_accuracy: float = 0.5
    calibration_confidence_threshold: float = 0.5
    calibration_trial_interval_ms: int = 2000

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == "production"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get settings instance.
    Useful for dependency injection in FastAPI.
    """
    return settings
