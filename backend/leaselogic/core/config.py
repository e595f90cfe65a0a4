"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    # sqlite+aiosqlite for local runs, postgresql+asyncpg in deployments
    DATABASE_URL: str = "sqlite+aiosqlite:///./leaselogic.db"
    DB_AUTO_CREATE: bool = True
    DB_ECHO: bool = False

    # ── Redis / Celery ────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── Execution ─────────────────────────────
    # "local" runs jobs on an in-process worker pool, "celery" dispatches them
    EXECUTION_BACKEND: str = "local"
    JOB_WORKER_COUNT: int = 4
    # must outlast the slowest phase (timeout x attempts plus backoff)
    JOB_LEASE_SECONDS: float = 1200.0
    JOB_LEASE_RECHECK_SECONDS: float = 60.0
    STORAGE_MAX_RETRIES: int = 3
    STORAGE_RETRY_DELAY_SECONDS: float = 2.0

    # ── Activity Gateway ──────────────────────
    ACTIVITY_WORKER_POOL_SIZE: int = 8
    ACTIVITY_MAX_ATTEMPTS: int = 3
    ACTIVITY_BACKOFF_SECONDS: float = 1.0
    PHASE_TIMEOUT_SECONDS: float = 300.0
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # ── File Storage ──────────────────────────
    FILE_STORE_DIR: str = "./data/documents"
    MAX_FILE_SIZE_BYTES: int = 52_428_800  # 50 MB

    # ── LangSmith Tracing ────────────────────
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_ENDPOINT: str = "https://api.smith.langchain.com"
    LANGSMITH_PROJECT: str = "leaselogic-analysis"
    LANGSMITH_TRACING: bool = False

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    ESTIMATED_DURATION: str = "5-10 minutes"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
