from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration, read once from the environment / .env"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Counseling & Blog API"
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "counseling"

    # Security
    jwt_secret: str = "dev-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30

    # Uploads
    max_file_upload: int = 5_000_000
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "coyolia/blogs"

    # Email
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: str = "no-reply@example.com"

    cors_origins: List[str] = ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
