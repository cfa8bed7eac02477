from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="KVSTORE_",
        extra="ignore",
    )

    app_name: str = "Key/Value Store"
    app_version: str = "0.1.0"

    host: str = "127.0.0.1"
    port: int = Field(default=4000, ge=1, le=65535)

    snapshot_enabled: bool = True
    snapshot_path: str = "data.txt"

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
