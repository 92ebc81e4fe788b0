"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "CampiBook"
    debug: bool = True
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = "postgresql+asyncpg://campibook:campibook@db:5432/campibook"
    database_echo: bool = False

    # Identity provider tokens - injected at process start, never compiled in
    secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Booking engine
    store_timeout_seconds: float = 5.0
    owners_may_book: bool = False
    timezone: str = "Europe/Rome"

    model_config = {"env_prefix": "CB_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
