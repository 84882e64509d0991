import os
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    DB_USER: Optional[str] = os.getenv("DB_USER")
    DB_PASS: Optional[str] = os.getenv("DB_PASS")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    DB_SSLMODE: str = os.getenv("DB_SSLMODE", "require")
    AUTH_DB_NAME: str = os.getenv("AUTH_DB_NAME", "clm_auth")
    CLM_DB_NAME: str = os.getenv("CLM_DB_NAME", "clm")

    # full URL overrides (sqlite for local runs and tests)
    AUTH_DATABASE_URL: Optional[str] = os.getenv("AUTH_DATABASE_URL")
    CLM_DATABASE_URL: Optional[str] = os.getenv("CLM_DATABASE_URL")

    # Workflow
    ESCALATION_DUE_DAYS: int = int(os.getenv("ESCALATION_DUE_DAYS", 3))
    # when set, FINALIZE is only allowed after a finance review
    FINANCE_REVIEW_REQUIRED: bool = os.getenv(
        "FINANCE_REVIEW_REQUIRED", "False").lower() == "true"
    DEFAULT_ORG_CODE: str = os.getenv("DEFAULT_ORG_CODE", "CLM")

    # Audit
    AUDIT_METADATA_MAX_STRING: int = int(
        os.getenv("AUDIT_METADATA_MAX_STRING", 5000))
    AUDIT_METADATA_MAX_DEPTH: int = int(
        os.getenv("AUDIT_METADATA_MAX_DEPTH", 3))
    AUDIT_METADATA_MAX_ITEMS: int = int(
        os.getenv("AUDIT_METADATA_MAX_ITEMS", 100))
    AUDIT_METADATA_MAX_KEYS: int = int(
        os.getenv("AUDIT_METADATA_MAX_KEYS", 50))

    ALLOWED_ORIGINS: str = os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:8080,http://127.0.0.1:8001")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

AUTH_DATABASE_URL = settings.AUTH_DATABASE_URL or (
    f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.AUTH_DB_NAME}?sslmode={settings.DB_SSLMODE}"
)

CLM_DATABASE_URL = settings.CLM_DATABASE_URL or (
    f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.CLM_DB_NAME}?sslmode={settings.DB_SSLMODE}"
)
