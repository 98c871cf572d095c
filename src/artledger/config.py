from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://app:devpassword@db:5432/artledger"
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_BACKEND: str = "memory"

    JWT_SECRET_KEY: str = ""
    JWT_EXPIRE_MINUTES: int = 60 * 24

    BASE_URL: str = "http://localhost:8000"
    STORAGE_ROOT: str = "wwwroot"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LEDGER_MARKETPLACE_ACCOUNT_ID: str = "0.0.6945291"
    LEDGER_SELLER_ACCOUNT_BASE: int = 1_000_000
    LEDGER_LATENCY_SCALE: float = 1.0

    APP_ENV: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
