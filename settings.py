from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod")
    )

    # When disabled every request runs as the local user below
    auth_enabled: bool = False
    local_user_email: str = "local@example.com"
    local_user_type: str = "employer"

    # Cognito Settings (Optional for local dev)
    cognito_user_pool_id: Optional[str] = None
    cognito_app_client_id: Optional[str] = None
    cognito_domain: Optional[str] = None
    aws_region: Optional[str] = None

    # Invite emails
    sendgrid_api_key: Optional[str] = None
    email_from: str = "no-reply@matchboard.app"
    email_from_name: str = "Matchboard"
    invite_expiry_days: int = 7

    # Matching
    employer_reject_hide_hours: int = 24
    feed_page_size: int = 20

    # Application base URL (for constructing invite links etc.)
    app_base_url: str = "http://localhost:8000"  # Default for local dev
    cors_origins: List[str] = [
        "http://localhost",
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
