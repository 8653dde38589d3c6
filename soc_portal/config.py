import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # If DB_URL is not provided, fall back to a local sqlite file so the API can be
    # run without a Postgres instance.
    DB_URL: str = os.getenv("DB_URL") or "sqlite:///./dev.db"

    # Pool sizing mirrors the portal's node-postgres pool (max 20, 2s connect timeout)
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE") or 20)
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT") or 2)
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE") or 1800)

    PROJECT_NAME: str = os.getenv("PROJECT_NAME") or "SOC Portal API"

    LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").upper()

    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in (os.getenv("CORS_ORIGINS") or "*").split(",") if origin.strip()
    ]


settings = Settings()
