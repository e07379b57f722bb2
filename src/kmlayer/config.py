"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Layer settings loaded from KMLAYER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KMLAYER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Re-flush marker icons on every activation and bypass cached bitmaps
    force_icon_refresh: bool = False

    # Downloads
    download_timeout: float = 30.0     # seconds per request
    download_workers: int = 4
    user_agent: str = "kmlayer/0.1.0"

    # Raw image bytes cached on disk, keyed by sha256(url); "" disables
    asset_cache_dir: str = "~/.cache/kmlayer"


settings = Settings()
