"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"
    site_url: str = "http://localhost:5173"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Content documents (posts, picks, categories)
    azure_storage_account: str = "masmaastorage"
    azure_content_container: str = "content"

    # Uploaded media (images)
    azure_media_container: str = "media"
    media_public_domain: str = ""  # e.g. media.example.org; blank = blob URL
    upload_url_expiry_seconds: int = 3600

    # Azure User-Assigned Managed Identity
    managed_identity_client_id: str = ""

    # HS256 secret shared with the hosted auth service
    auth_jwt_secret: str = ""
    auth_jwt_audience: str = "authenticated"

    # Editors' Choice
    editors_choice_max_slots: int = 6
    editors_choice_window_days: int = 7

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
