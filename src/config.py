from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "prefer"

    # Booking engine
    BOOKING_REFERENCE_PREFIX: str = "TRN"
    SEARCH_HORIZON_DAYS: int = 90
    LOCK_TIMEOUT_SECONDS: float = 5.0

    # Application
    PROJECT_NAME: str = "Train Ticketing System"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST and self.PGDATABASE and self.PGUSER:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD or ''}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./train_ticketing.db"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
