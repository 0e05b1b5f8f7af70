"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "helpdesk_dev"
    mongo_timeout_ms: int = 5000
    mongo_socket_timeout_ms: int = 30000

    # Identity (tokens are issued elsewhere, we only verify them)
    jwt_secret: str = "changeme"
    jwt_algorithm: str = "HS256"

    # Attachments
    attachments_max_mb: int = 5
    attachments_max_files: int = 5
    attachments_base_path: str = "./storage/attachments"
    allowed_mime_types: str = "image/jpeg,image/jpg,image/png,image/gif,application/pdf,text/plain,application/msword,application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # Audit trail
    audit_async: bool = True
    audit_queue_size: int = 1000
    audit_stats_window_days: int = 7
    audit_query_max_limit: int = 100

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def allowed_mime_types_list(self) -> List[str]:
        """Parse allowed mime types string to list"""
        return [mime.strip() for mime in self.allowed_mime_types.split(",")]

    @property
    def attachments_max_bytes(self) -> int:
        """Max attachment size in bytes"""
        return self.attachments_max_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
