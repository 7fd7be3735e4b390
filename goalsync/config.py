import os
import sys
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    local_store_path: str = Field("./data/local_store.json", alias="GOALSYNC_LOCAL_STORE_PATH")
    database_url: Optional[str] = Field(None, alias="GOALSYNC_DATABASE_URL")
    database_echo: bool = Field(False, alias="GOALSYNC_DATABASE_ECHO")
    database_pool_size: int = Field(5, alias="GOALSYNC_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(5, alias="GOALSYNC_DATABASE_MAX_OVERFLOW")
    remote_timeout_seconds: float = Field(4.0, gt=0, alias="GOALSYNC_REMOTE_TIMEOUT_SECONDS")
    bootstrap_timeout_seconds: float = Field(4.0, gt=0, alias="GOALSYNC_BOOTSTRAP_TIMEOUT_SECONDS")
    remote_collection: str = Field("goals", alias="GOALSYNC_REMOTE_COLLECTION")
    remote_subcollection: str = Field("daily", alias="GOALSYNC_REMOTE_SUBCOLLECTION")
    device_platform: str = Field(sys.platform, alias="GOALSYNC_DEVICE_PLATFORM")
    user_id: Optional[str] = Field(None, alias="GOALSYNC_USER_ID")
    http_host: str = Field("127.0.0.1", alias="GOALSYNC_HTTP_HOST")
    http_port: int = Field(8000, alias="GOALSYNC_HTTP_PORT")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def remote_enabled(self) -> bool:
        return bool(self.database_url)


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid goalsync configuration: {exc}") from exc
