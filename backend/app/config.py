"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

Values here are process-level defaults. Pricing, AI key, Midtrans keys and
general site settings can be overridden at runtime by admin-editable
documents in the `settings` collection (see app.services.settings_service).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"
    service_name: str = "editaja-api"
    public_base_url: str = "https://editaja.com"

    # Document store backend: "firestore" in production, "memory" for local dev
    store_backend: str = "firestore"

    # Firebase (auth + Firestore)
    firebase_project_id: Optional[str] = None
    firebase_credentials_json: Optional[str] = None  # Path to JSON file or JSON string

    # Store retry (only quota/resource-exhausted errors are retried)
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 1.0  # seconds, doubled on each attempt

    # AI image generation API
    ai_api_key: Optional[str] = None  # Takes precedence over settings/ai document
    ai_endpoint: str = "https://api.freepik.com/v1/ai/gemini-2-5-flash-image-preview"
    ai_poll_timeout: float = 90.0  # wall-clock deadline in seconds
    ai_poll_interval: float = 3.0
    ai_request_timeout: float = 60.0

    # Pricing defaults (overridden by settings/tokens)
    initial_tokens: int = 100
    token_cost_per_generate: int = 10
    max_anonymous_generations: int = 1

    # Image re-hosting
    rehost_download_timeout: float = 30.0

    # Cloudflare R2 / S3-compatible storage (the app's own image host)
    r2_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    r2_bucket: str = "editaja-images"
    r2_access_key: Optional[str] = None
    r2_secret_key: Optional[str] = None
    r2_region: str = "auto"  # R2 uses "auto" for region
    r2_public_url: Optional[str] = None  # Public base URL serving the bucket

    # Midtrans payment gateway (overridden by settings/midtrans)
    midtrans_server_key: Optional[str] = None
    midtrans_client_key: Optional[str] = None
    midtrans_is_production: bool = False
    midtrans_timeout: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
