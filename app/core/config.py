# app/core/config.py
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# PROJECT_ROOT = parent of app → .../
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Accessible Routing API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # External walking router (OSRM HTTP API)
    OSRM_ENABLED: bool = True
    OSRM_BASE_URL: str = "https://router.project-osrm.org"
    OSRM_PROFILE: str = "walking"
    OSRM_TIMEOUT_S: float = 8.0

    # Ramps / obstacles / accessible roads snapshots
    DATA_DIR: Path = PROJECT_ROOT / "data"
    # User obstacle reports; empty string disables the snapshot
    OBSTACLE_SNAPSHOT_FILE: str = "obstacle_reports.json"

    # Accessibility policy
    DEFAULT_MAX_INCLINE: float = 0.08
    DEFAULT_MIN_WIDTH: float = 0.9
    RAMP_RADIUS_M: float = 100.0
    MAX_WHEELCHAIR_DISTANCE_M: float = 2000.0
    OBSTACLE_RADIUS_M: float = 100.0
    SMOOTHING_ANGLE_DEG: float = 15.0

    # Navigation sessions
    SESSION_MAX_AGE_S: float = 30 * 60
    SESSION_SWEEP_INTERVAL_S: float = 5 * 60


settings = Settings()
