# app/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API / Server
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8090
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./vitalis.db"

    # Auth / JWT
    JWT_SECRET: str = "dev_fallback_secret_change_me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Recommendation engine
    PROFILE_CACHE_TTL_SECONDS: int = 3600
    RECOMMENDATION_CACHE_TTL_SECONDS: int = 3600
    BIOMETRIC_WINDOW_DAYS: int = 30
    RECENT_ACTIVITY_DAYS: int = 7
    SOURCE_WORKERS: int = 12
    GENERATIVE_WORKERS: int = 8

    # Generative source (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GENERATIVE_ENABLED: bool = True
    GENERATIVE_TIMEOUT_SECONDS: float = 8.0
    GENERATIVE_TEMPERATURE: float = 0.7
    GENERATIVE_MAX_TOKENS: int = 1500


settings = Settings()
