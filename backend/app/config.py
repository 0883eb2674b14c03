from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg://user:password@db/dbname"

    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"

    RENDER_SERVICE: str = "heygen"
    WORKER_BATCH_SIZE: int = 3
    WORKER_SCHEDULE_SECONDS: float = 60.0

    HEYGEN_DEFAULT_BASE_URL: str = "https://api.heygen.com"
    HEYGEN_DEFAULT_VOICE_ID: str = "de-DE-Neural2-D"
    HEYGEN_API_VERSION: str = "v1"
    HEYGEN_POLL_INTERVAL_SECONDS: float = 5.0
    HEYGEN_POLL_ATTEMPTS: int = 60
    HEYGEN_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Comma separated; empty means any table with a safe identifier
    RELAY_ALLOWED_TABLES: str = ""

    class Config:
        env_file = ".env"

    @property
    def relay_allowed_tables(self) -> List[str]:
        return [t.strip() for t in self.RELAY_ALLOWED_TABLES.split(",") if t.strip()]

settings = Settings()
