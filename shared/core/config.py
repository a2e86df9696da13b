import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    APP_NAME: str = "Organization Onboarding API"
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8001")
    CORS_ORIGINS: list[str] = ["http://localhost:8080", "http://127.0.0.1:8001"]

    # Full URL wins over the DB_* parts (tests point this at sqlite)
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str | None = os.getenv("DB_HOST", "localhost")
    DB_PORT: str | None = os.getenv("DB_PORT", "5432")
    DB_NAME: str | None = os.getenv("DB_NAME", "onboarding")

    # OTP lifecycle
    OTP_EXPIRE_MINUTES: int = 10
    CODE_GENERATION_ATTEMPTS: int = 5

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Notification channels
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    SMTP_HOST: str | None = os.getenv("SMTP_HOST")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", 587))
    SMTP_USERNAME: str | None = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD: str | None = os.getenv("SMTP_PASSWORD")
    SMTP_USE_SSL: bool = os.getenv("SMTP_USE_SSL", "False").lower() == "true"
    EMAIL_SENDER: str = os.getenv("EMAIL_SENDER", "noreply@onboarding.local")

    TWILIO_ACCOUNT_SID: str | None = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: str | None = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER: str | None = os.getenv("TWILIO_FROM_NUMBER")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


def build_database_url(config: Settings = settings) -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL
    return (
        f"postgresql+psycopg2://{config.DB_USER}:{config.DB_PASS}@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}"
    )


DATABASE_URL = build_database_url()
