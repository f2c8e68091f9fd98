# settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_NAME: str = "svcportal"

    API_BASE_URL: str = "http://localhost:8000/api"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # durable {token, user} record, survives restarts
    STORAGE_PATH: str = "./svcportal-session.db"
    STORAGE_KEY: str = "auth-storage"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SVCPORTAL_",
        extra="ignore",
    )

settings = Settings()
