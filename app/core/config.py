from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Percentages are reported with this many decimal places
SCORE_DECIMALS = 2


class Settings(BaseSettings):
    """Process configuration, read from env vars or a .env file at the repo root."""

    # Relational store (system of record for summaries)
    DATABASE_URL: str = f"sqlite:///{BASE_DIR}/classroom_stats.db"
    DATABASE_ECHO: bool = False

    # Document store (best-effort archive). Empty URI disables archiving.
    MONGODB_URI: str = ""
    MONGODB_DB_NAME: str = "rls_guard_dog"
    MONGODB_COLLECTION: str = "class_statistics"
    MONGODB_TIMEOUT_MS: int = 5000

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": str(BASE_DIR / ".env"), "case_sensitive": True, "extra": "ignore"}


settings = Settings()
