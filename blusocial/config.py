"""
Configuration module for the BluSocial matching service.

Loads environment variables and provides configuration singletons.
Uses pydantic for validation.
"""

from pydantic_settings import BaseSettings
from typing import Optional
import os


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All values come from .env file or system environment.
    Type hints provide validation (pydantic converts types automatically).
    """

    # ============================================================
    # FIREBASE CONFIGURATION (REQUIRED)
    # ============================================================
    FIREBASE_PROJECT_ID: str = ""
    """Firebase project ID. Find in Firebase Console → Project Settings."""

    GOOGLE_APPLICATION_CREDENTIALS: str = "/config/serviceAccountKey.json"
    """Path to Firebase service account JSON file."""

    USERS_COLLECTION: str = "users"
    """Firestore collection holding user profile documents."""

    # ============================================================
    # DISCOVERY CONFIGURATION
    # ============================================================
    DEFAULT_DISCOVERY_RADIUS_KM: float = 0.5
    """Radius used when a profile has no (or a non-positive) discoveryRadius."""

    # ============================================================
    # BATCH LOOKUP CONFIGURATION
    # ============================================================
    BATCH_CHUNK_SIZE: int = 30
    """Ids per Firestore "in" query. Firestore rejects more than 30."""

    # ============================================================
    # PUSH NOTIFICATIONS
    # ============================================================
    NOTIFICATION_ICON_URL: Optional[str] = None
    """Icon shown with web push notifications. Leave empty for the browser default."""

    APP_BASE_URL: str = ""
    """Public HTTPS origin of the web app. Notification links are resolved against it."""

    # ============================================================
    # GRAPH CONFIGURATION
    # ============================================================
    GRAPH_TIMEOUT: int = 30
    """Maximum seconds a graph can run before timeout. Default: 30 seconds."""

    # ============================================================
    # SECURITY CONFIGURATION
    # ============================================================
    SERVICE_TOKEN: str = os.getenv("SERVICE_TOKEN", "")
    """Shared secret for authenticating requests from the web app backend."""

    # ============================================================
    # SERVER CONFIGURATION
    # ============================================================
    PORT: int = 8000
    """Port to run FastAPI server on. Default: 8000."""

    HOST: str = "0.0.0.0"
    """Host to bind to. 0.0.0.0 = accessible from network."""

    DEBUG: bool = False
    """Enable debug logging. Set True for development, False for production."""

    LOG_FILE: Optional[str] = "logs/service.log"
    """Rotating log file. Empty disables file logging (read-only containers)."""

    class Config:
        """Pydantic configuration."""
        env_file = ".env"  # Read from .env file
        case_sensitive = True  # Variable names are case-sensitive
        extra = "ignore"  # Ignore extra env vars not defined above


# ============================================================
# SINGLETON INSTANCE
# ============================================================
# Load config once at startup, reuse throughout app
config = Config()


# ============================================================
# VALIDATION AT STARTUP
# ============================================================
def validate_config() -> dict:
    """
    Validate that required config values are set.

    Called at app startup to fail fast if config is incomplete.

    Returns:
        dict: Status of each checked field

    Raises:
        ValueError: If required config is missing or out of range
    """
    errors = []

    # Firebase is always required
    if not config.FIREBASE_PROJECT_ID:
        errors.append("FIREBASE_PROJECT_ID is required")

    if config.DEFAULT_DISCOVERY_RADIUS_KM <= 0:
        errors.append("DEFAULT_DISCOVERY_RADIUS_KM must be greater than 0")

    # Firestore "in" queries accept at most 30 values
    if not 1 <= config.BATCH_CHUNK_SIZE <= 30:
        errors.append("BATCH_CHUNK_SIZE must be between 1 and 30")

    # FCM only accepts HTTPS click-through links
    if config.APP_BASE_URL and not config.APP_BASE_URL.startswith("https://"):
        errors.append("APP_BASE_URL must be an https:// URL")

    if errors:
        raise ValueError(f"Configuration errors:\n" + "\n".join([f"  - {e}" for e in errors]))

    return {
        "firebase": "✓ Configured" if config.FIREBASE_PROJECT_ID else "✗ Missing",
        "discovery_radius_km": str(config.DEFAULT_DISCOVERY_RADIUS_KM),
        "batch_chunk_size": str(config.BATCH_CHUNK_SIZE),
        "push_icon": "✓ Configured" if config.NOTIFICATION_ICON_URL else "✗ Default",
    }


if __name__ == "__main__":
    """Allow testing config by running: python -m blusocial.config"""
    try:
        status = validate_config()
        print("✅ Configuration is valid!")
        print("\nConfiguration Status:")
        for key, value in status.items():
            print(f"  {key}: {value}")
    except ValueError as e:
        print(f"❌ Configuration error:\n{e}")
        exit(1)
