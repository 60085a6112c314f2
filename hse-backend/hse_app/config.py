from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: Optional[str] = None
    data_dir: Path = Path("data")
    max_upload_bytes: int = 20 * 1024 * 1024
    raw_text_preview_chars: int = 1000
    cors_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context):
        # Empty DATABASE_URL in .env means "no database"
        if self.database_url is not None and not self.database_url.strip():
            self.database_url = None

settings = Settings()
