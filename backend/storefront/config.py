import os
import tempfile
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./storefront.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    SECRET_KEY: str = "change-this-secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24 * 7
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOCK_DIR: str = os.path.join(tempfile.gettempdir(), "storefront_locks")
    LOCK_TIMEOUT_SECONDS: int = 10
    PAYMENT_SUCCESS_URL: str = "http://localhost:3000/orders?paid=1"
    PAYMENT_CANCEL_URL: str = "http://localhost:3000/cart"
    CURRENCY: str = "usd"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
