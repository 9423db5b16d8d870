"""
Core settings and environment variables for the Fill-A-Hole civic API.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


# Hard cap imposed by FCM on tokens per multicast call.
PUSH_PROVIDER_MAX_BATCH = 500


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Fill-A-Hole Civic API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:8081,http://localhost:19006"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-memory Firestore for local development and tests
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = None

    # AI authenticity cross-check
    AI_ENABLED: bool = True
    AI_PROVIDER: str = "gemini"  # "gemini" or "openai"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT_SECONDS: float = 10.0
    AI_MAX_DEDUCTION: int = 50
    AI_DEFAULT_DEDUCTION: int = 30

    # Geofenced notifications
    NOTIFY_RADIUS_KM: float = 3.0
    NOTIFY_USER_ROLE: str = "citizen"
    PUSH_BATCH_SIZE: int = PUSH_PROVIDER_MAX_BATCH

    # Geocoding for the capture flow
    # - GEOCODING_PROVIDER: "nominatim" (default, no API key) or "google"
    GEOCODING_PROVIDER: str = "nominatim"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    GEOCODE_DEBOUNCE_SECONDS: float = 2.0

    # Background jobs (notification fan-out)
    JOB_WORKERS: int = 4
    JOB_HISTORY_LIMIT: int = 1000  # finished jobs kept for GET /jobs/{id}

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def push_batch_size(self) -> int:
        """Configured chunk size, never above the provider limit."""
        return max(1, min(self.PUSH_BATCH_SIZE, PUSH_PROVIDER_MAX_BATCH))


# Process-level instance for the app entrypoint and scripts.
# Services get their settings through AppContext instead.
settings = Settings()
