"""Application configuration via environment variables."""

import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 21100
    public_base_url: str = "http://localhost:21100"
    cors_origins: List[str] = ["*"]

    # Storage
    uploads_dir: str = "uploads"
    data_dir: str = "media"
    max_upload_bytes: int = 500 * 1024 * 1024

    # Processing
    transcode_delay_seconds: float = 0.05

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MEDIAHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def uploads_path(self) -> str:
        return os.path.abspath(self.uploads_dir)

    @property
    def media_file(self) -> str:
        return os.path.join(os.path.abspath(self.data_dir), "media.json")

    @property
    def drafts_file(self) -> str:
        # Drafts live next to media.json
        return os.path.join(os.path.abspath(self.data_dir), "drafts.json")


settings = Settings()
