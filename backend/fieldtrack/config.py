from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_POINT_RULES: Dict[str, int] = {
    "فحص فلتر": 3,
    "كسر مرحلة حبيبات + تبديل": 5,
    "صيانة دورية": 5,
    "تركيب جديد": 8,
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="FT_", case_sensitive=False)
    """Application runtime configuration."""

    app_name: str = "FieldTrack"
    environment: str = "development"
    host: str = os.getenv("FT_HOST", "127.0.0.1")
    port: int = int(os.getenv("FT_PORT", "8080"))

    sqlite_path: Path = Path(os.getenv("FT_SQLITE_PATH", "./data/fieldtrack.db"))

    locale: str = os.getenv("FT_LOCALE", "ar-SA")
    timezone: str = os.getenv("FT_TIMEZONE", "Asia/Riyadh")
    log_level: str = os.getenv("FT_LOG_LEVEL", "INFO")

    fuel_threshold_km: float = float(os.getenv("FT_FUEL_THRESHOLD_KM", "250"))
    default_distance_km: float = float(os.getenv("FT_DEFAULT_DISTANCE_KM", "5"))
    default_technician: str = os.getenv("FT_DEFAULT_TECHNICIAN", "فهد الحربي")
    seed_sample_orders: bool = os.getenv("FT_SEED_SAMPLE_ORDERS", "true").lower() == "true"

    point_rules: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_POINT_RULES))

    @field_validator("fuel_threshold_km", "default_distance_km")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must not be negative")
        return value


settings = Settings()

# Ensure essential directories exist
settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
