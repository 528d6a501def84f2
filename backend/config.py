# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./clothing_store.db"

    FRONTEND_URL: str = "http://localhost:3000"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Checkout pricing rules
    FREE_SHIPPING_THRESHOLD: float = 50.0
    SHIPPING_COST: float = 5.99
    # When enabled, client-sent unit prices and order total win over server lookups
    TRUST_CLIENT_PRICING: bool = False

    INVOICE_STORAGE_DIR: str = "storage/invoices"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra = "ignore"

settings = Settings()
