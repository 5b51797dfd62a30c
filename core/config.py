from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Telegram Bot
    telegram_bot_token: str

    # Database
    database_url: str

    # Redis
    redis_url: str

    # API
    public_base_url: str
    api_port: int = 8000
    api_base_url: str = "http://api:8000"

    # Bot
    bot_port: int = 8080

    # Chat requests
    chat_request_cooldown_minutes: int = 5
    active_session_ttl_seconds: int = 86400

    # Security
    secret_key: str
    internal_bot_secret: str  # HMAC secret for bot->API authentication

    # Environment
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
