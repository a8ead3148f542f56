from dataclasses import dataclass, field
from typing import List, Optional
import os

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:

    database_url: str = "sqlite+aiosqlite:///./portal.db"
    api_base_url: str = "http://localhost:5000"

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    cloud_name: Optional[str] = None
    cloud_api_key: Optional[str] = None
    cloud_api_secret: Optional[str] = None
    upload_preset: str = "mauritius"
    media_upload_url: str = "https://api.cloudinary.com"

    # request | background | both | off
    expiration_mode: str = "background"
    expiration_interval_seconds: float = 300.0
    expiration_max_backoff_seconds: float = 3600.0

    max_images_per_listing: int = 10

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        database_url = os.getenv("DATABASE_URL")
        if database_url:
            config.database_url = database_url

        api_base_url = os.getenv("API_BASE_URL")
        if api_base_url:
            config.api_base_url = api_base_url.rstrip("/")

        api_host = os.getenv("API_HOST")
        if api_host:
            config.api_host = api_host

        api_port = os.getenv("API_PORT")
        if api_port:
            config.api_port = int(api_port)

        origins_env = os.getenv("CORS_ORIGINS")
        if origins_env:
            config.cors_origins = [o.strip() for o in origins_env.split(",") if o.strip()]

        config.cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME") or config.cloud_name
        config.cloud_api_key = os.getenv("CLOUDINARY_API_KEY") or config.cloud_api_key
        config.cloud_api_secret = os.getenv("CLOUDINARY_API_SECRET") or config.cloud_api_secret

        upload_preset = os.getenv("CLOUDINARY_UPLOAD_PRESET")
        if upload_preset:
            config.upload_preset = upload_preset

        media_upload_url = os.getenv("MEDIA_UPLOAD_URL")
        if media_upload_url:
            config.media_upload_url = media_upload_url.rstrip("/")

        expiration_mode = os.getenv("EXPIRATION_MODE")
        if expiration_mode:
            config.expiration_mode = expiration_mode.strip().lower()

        interval = os.getenv("EXPIRATION_INTERVAL_SECONDS")
        if interval:
            config.expiration_interval_seconds = float(interval)

        max_backoff = os.getenv("EXPIRATION_MAX_BACKOFF_SECONDS")
        if max_backoff:
            config.expiration_max_backoff_seconds = float(max_backoff)

        config.log_level = os.getenv("LOG_LEVEL", config.log_level).upper()
        config.log_format = os.getenv("LOG_FORMAT", config.log_format).lower()

        return config

    @property
    def sweep_on_request(self) -> bool:
        return self.expiration_mode in ("request", "both")

    @property
    def sweep_in_background(self) -> bool:
        return self.expiration_mode in ("background", "both")
