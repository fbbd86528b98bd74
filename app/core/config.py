from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Timesheet Tracker"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./timesheets.db"

    # Sessions
    SESSION_EXPIRE_MINUTES: int = 480  # 8 hours

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Timesheet rules
    MAX_DAY_HOURS: float = 24.0
    HOURS_STEP: float = 0.5
    WEEKS_BACK: int = 12
    WEEKS_AHEAD: int = 4

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
