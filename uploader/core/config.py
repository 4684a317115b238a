"""Application configuration."""

import hashlib
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables will be loaded and validated using Pydantic.
    """

    app_name: str = "Uploader"
    version: str = "0.1.0"

    # CORS Settings
    cors_origins: list[str] = ["*"]  # Default to allow all in development
    cors_allow_credentials: bool = False

    # Server Settings
    HOST: str = "localhost"
    PORT: int = Field(default=10443, ge=1, le=65535)

    # Storage Settings
    FILES_DIR: Path = Path("files")
    HASH_ALGORITHM: str = "sha1"

    # Download Settings
    DOWNLOAD_VERIFY_TLS: bool = True
    DOWNLOAD_TIMEOUT: float = Field(default=30.0, gt=0)
    DOWNLOAD_CHUNK_SIZE: int = Field(default=65536, gt=0)

    # Basic auth for the upload and download forms
    SECRET_USER: str | None = None
    SECRET_PASSWORD: str | None = None

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",  # Allow extra fields in environment
    )

    @field_validator("HASH_ALGORITHM")
    @classmethod
    def validate_hash_algorithm(cls, value: str) -> str:
        """Reject algorithms hashlib cannot construct."""
        name = value.lower()
        if name not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {value}")
        if hashlib.new(name).digest_size == 0:
            raise ValueError(f"Hash algorithm has variable digest size: {value}")
        return name

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize the log level name."""
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_origins(self) -> "Settings":
        """Validate CORS origins."""
        if self.cors_origins == ["*"]:
            self.cors_origins = [
                "http://localhost",
                "http://localhost:10443",
            ]
        return self

    @property
    def auth_enabled(self) -> bool:
        """Whether the upload and download forms require basic auth."""
        return bool(self.SECRET_USER) and bool(self.SECRET_PASSWORD)

    @property
    def jobs_dir(self) -> Path:
        """Directory holding per-job working directories."""
        return self.FILES_DIR / "tmp"

