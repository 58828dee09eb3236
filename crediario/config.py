"""Configuration management using Pydantic Settings"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (local store, also the fallback when the remote backend is down)
    database_url: str = "sqlite:///./crediario.db"

    # Remote backend; unset means the local store is the only store
    notes_api_base: Optional[str] = None

    # Service
    service_name: str = "crediario"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0
    remote_max_retries: int = 3
    remote_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Notes
    min_installments: int = 2
    max_installments: int = 60
    default_installments: int = 2

    # Manual payments above the amount due: "reject" refuses them, "cap" clamps
    overpayment_policy: Literal["reject", "cap"] = "reject"


settings = Settings()
