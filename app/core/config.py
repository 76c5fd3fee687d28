from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # Ignore extra fields in .env
    )

    database_url: str
    db_echo: bool = False

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    environment: str = "development"
    debug: bool = True

    host: str = "0.0.0.0"
    port: int = 8010

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    storage_bucket: str = "slate360-storage"

    # Object store call budget and signed URL lifetimes (seconds)
    storage_timeout_seconds: float = 30.0
    upload_url_ttl_seconds: int = 900
    download_url_ttl_seconds: int = 3600
    zip_fetch_url_ttl_seconds: int = 300

    zip_max_files: int = 500
    zip_fetch_concurrency: int = 8

    pending_upload_grace_minutes: int = 60
    reconcile_max_attempts: int = 5
    maintenance_key: Optional[str] = None


settings = Settings()
