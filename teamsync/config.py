"""Centralized settings for TeamSync via Pydantic BaseSettings.

All configuration is read from environment variables with the TEAMSYNC_ prefix,
falling back to the defaults defined here. Set values in a .env file or export
them in the shell before starting the engine or the CLI.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Environment variable names are formed by uppercasing the field name and
    prepending the TEAMSYNC_ prefix.  Example: TEAMSYNC_LOOKBACK_WINDOW_SECONDS
    overrides lookback_window_seconds.
    """

    # Detection: how far back (by timestamp) two events on one resource collide
    lookback_window_seconds: float = 30.0

    # Cleanup: default age cutoff for resolved conflicts and logged events
    cleanup_after_hours: float = 24.0

    # Logging level applied by the CLI entry point
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="TEAMSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Module-level singleton; import this throughout the codebase
settings = Settings()
