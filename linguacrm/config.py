"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./linguacrm.db"
    # File or directory measured by the storage inspector
    data_path: str = "./linguacrm.db"

    # Export document identity
    app_name: str = "Prospect CRM"
    export_version: str = "1.0.0"

    # Backup Configuration
    backup_dir: str = "./backups"
    backup_server_url: str = ""  # Empty disables remote backup
    backup_check_interval_hours: int = 24
    backup_http_timeout_seconds: float = 15.0

    # Logging
    log_format: str = "json"  # 'json' or 'text'
    log_level: str = "INFO"
    service_name: str = "linguacrm-backup"

    # Testing
    testing: bool = False  # Set to True during tests to disable connection pooling


settings = Settings()
