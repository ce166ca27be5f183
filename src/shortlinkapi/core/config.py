from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_env: str = "dev"
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Analytics
    geo_api_url: str = "https://ipapi.co"
    geo_timeout_seconds: float = 3.0
    ip_hash_salt: str = ""

    class Config:
        env_file = ".env"


settings = Settings()
