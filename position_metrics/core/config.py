from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

# Load environment variables from .env if present
load_dotenv(ENV_PATH)


class Settings(BaseSettings):
    app_env: str = Field("development")
    app_host: str = Field("127.0.0.1")
    app_port: int = Field(8000)
    log_level: str = Field("INFO")
    cors_origins: str = Field("*")

    editor_debounce_ms: int = Field(300, ge=0)
    currency_decimals: int = Field(2, ge=0, le=12)
    quantity_decimals: int = Field(8, ge=0, le=12)

    model_config = SettingsConfigDict(
        env_file=ENV_PATH,
        case_sensitive=False,
        extra="ignore",
    )

    def cors_origin_list(self) -> List[str]:
        """Split the comma separated CORS origins, defaulting to a wildcard."""
        origins = [item.strip() for item in (self.cors_origins or "").split(",") if item.strip()]
        return origins or ["*"]

    @property
    def editor_debounce_seconds(self) -> float:
        return self.editor_debounce_ms / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

