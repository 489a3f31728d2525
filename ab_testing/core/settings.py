from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from ``AB_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="AB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Assignment cookie ---
    # One cookie holds every experiment assignment for a visitor
    cookie_name: str = Field(default="ab_assignments", min_length=1)
    cookie_expiry_days: int = Field(default=30, gt=0)
    cookie_path: str = "/"
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # --- Assignment behaviour ---
    # ?ab_debug=cta-button-text:B,cta-color:green
    debug_param: str = "ab_debug"
    fallback_variant: str = "A"
    experiments_file: Optional[Path] = Field(
        default=None,
        description="JSON file with the experiment registry. Built-in experiments are used when unset.",
    )
    random_seed: Optional[int] = None

    # --- Observability ---
    environment: Literal["development", "production", "test"] = "production"
    log_level: str = "INFO"
    event_log_size: int = Field(default=1000, gt=0)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


config_settings = Settings()
