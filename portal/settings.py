import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Content API
    api_base_url: str = Field(default="http://localhost:8080", alias="API_BASE_URL")
    api_timeout: float = Field(default=10.0, alias="API_TIMEOUT")
    api_max_retries: int = Field(default=3, alias="API_MAX_RETRIES")
    api_retry_backoff: float = Field(default=0.5, alias="API_RETRY_BACKOFF")

    # Request cache
    cache_sweep_interval_seconds: int = Field(
        default=300, alias="CACHE_SWEEP_INTERVAL_SECONDS"
    )
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    # Store-level cache
    store_cache_ttl_seconds: int = Field(default=30, alias="STORE_CACHE_TTL_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")


def load_settings() -> Settings:
    """Read settings from the process environment (after .env is loaded)."""
    return Settings.model_validate(
        {name: value for name, value in os.environ.items() if name.isupper()}
    )


global_settings = load_settings()
