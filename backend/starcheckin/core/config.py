from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Star Check-In Backend"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    PORT: int = 3000

    # Database
    DATABASE_URL: str = "sqlite:///./sqlite.db"

    # Eventbrite OAuth
    CLIENT_ID: Optional[str] = None
    CLIENT_SECRET: Optional[str] = None
    OAUTH_REDIRECT_URI: str = "https://star-check-in-oauth-redirect.onrender.com/eventbrite-callback.html"
    OAUTH_TOKEN_URL: str = "https://www.eventbrite.com/oauth/token"

    # Eventbrite API
    EVENTBRITE_API_URL: str = "https://www.eventbriteapi.com/v3"
    UPSTREAM_TIMEOUT_SECONDS: float = 15.0
    ROSTER_MAX_PAGES: int = 50  # Guard against a never-ending continuation chain

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
