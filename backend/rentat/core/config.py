"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from project root
# config.py is at: backend/rentat/core/config.py
# Project root is: backend/rentat/core/../../../
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=True)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Rentat"
    app_env: str = Field(default="development", description="Application environment")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:8081",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"rentat.services": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/rentat.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(
        default=30,
        ge=1,
        description="Number of days to keep log files"
    )
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (api keys, tokens) - NOT RECOMMENDED"
    )

    # Paymob
    paymob_api_key: str = Field(default="", description="Paymob API key exchanged for auth tokens")
    paymob_integration_id: str = Field(default="", description="Paymob card integration ID")
    paymob_hmac_secret: str = Field(default="", description="Shared secret for webhook HMAC")
    paymob_iframe_id: str = Field(default="", description="Hosted checkout iframe ID")
    paymob_base_url: str = Field(
        default="https://accept.paymob.com/api",
        description="Paymob API base URL"
    )
    paymob_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="HTTP timeout for Paymob calls (seconds)"
    )
    paymob_token_ttl_seconds: int = Field(
        default=55 * 60,
        ge=60,
        le=3600,
        description="How long a Paymob auth token is reused (provider lifetime is one hour)"
    )
    paymob_default_currency: str = Field(default="EGP", description="Default payment currency")

    # Firebase
    firebase_project_id: str = Field(default="rentat-app", description="Firebase project ID")
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        description="Service account JSON path (application default credentials when empty)"
    )
    firestore_api_endpoint: Optional[str] = Field(
        default=None,
        description="Regional Firestore endpoint, e.g. eur3-firestore.googleapis.com"
    )

    @field_validator("paymob_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
