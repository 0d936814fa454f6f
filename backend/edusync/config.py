"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent
NAMING_STRATEGIES = ("timestamp", "uuid")


class Settings:
    ENV: str
    DATABASE_URL: str
    ALLOW_DEV_CORS: bool
    CORS_ORIGINS: list
    STORE_ENDPOINT: str
    STORE_ACCESS_KEY: str
    STORE_SECRET_KEY: str
    STORE_CONTAINER: str
    STORE_SECURE: bool
    STORE_PUBLIC_URL: str
    STORE_TIMEOUT_SECONDS: float
    UPLOAD_NAMING: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
        self.STORE_ENDPOINT = os.getenv("STORE_ENDPOINT", "").strip()
        self.STORE_ACCESS_KEY = os.getenv("STORE_ACCESS_KEY", "").strip()
        self.STORE_SECRET_KEY = os.getenv("STORE_SECRET_KEY", "").strip()
        self.STORE_CONTAINER = os.getenv("STORE_CONTAINER", "").strip()
        self.STORE_SECURE = os.getenv("STORE_SECURE", "true").lower() == "true"
        self.STORE_PUBLIC_URL = os.getenv("STORE_PUBLIC_URL", "").strip()
        self.STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "30"))
        self.UPLOAD_NAMING = os.getenv("UPLOAD_NAMING", "timestamp").lower()
        self._validate()

    def _validate(self):
        if self.STORE_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("STORE_TIMEOUT_SECONDS must be positive")
        if self.UPLOAD_NAMING not in NAMING_STRATEGIES:
            raise RuntimeError(f"UPLOAD_NAMING must be one of {', '.join(NAMING_STRATEGIES)}")


settings = Settings()
