"""Configuration and settings management."""

import tempfile
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Storage
    DOCUMENTS_DIR: str = str(Path.home() / "Documents")
    CARDS_DIRNAME: str = "cards"
    EXPORT_DIR: str = str(Path(tempfile.gettempdir()) / "kard-export")

    # Worker pool used for background writes
    BACKGROUND_WORKERS: int = 2

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "INFO"
        return v

    @field_validator('LOG_FORMAT', mode='before')
    @classmethod
    def validate_log_format(cls, v):
        """Only json and console renderers are supported."""
        if isinstance(v, str) and v.strip().lower() in ("json", "console"):
            return v.strip().lower()
        return "json"

    @field_validator('CARDS_DIRNAME', mode='before')
    @classmethod
    def validate_cards_dirname(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "cards"
        return v

    @field_validator('BACKGROUND_WORKERS')
    @classmethod
    def validate_background_workers(cls, v):
        if v < 1:
            raise ValueError("BACKGROUND_WORKERS must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

# Global settings instance
settings = Settings()

def resolve_storage_dir() -> Path:
    """Directory holding card records, card images and the palette file."""
    return Path(settings.DOCUMENTS_DIR).expanduser() / settings.CARDS_DIRNAME

def resolve_export_dir() -> Path:
    """Staging directory used to assemble export bundles."""
    return Path(settings.EXPORT_DIR).expanduser()

def ensure_storage_dir() -> Path:
    """Ensure the storage directory exists and return it."""
    storage_dir = resolve_storage_dir()
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir
