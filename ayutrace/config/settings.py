"""
Configuration settings for AyuTrace.

This module provides the configuration management for the provenance ledger.
It defines the sealing difficulty, the compliance policy enforced on every
submitted transaction (approved harvesting zone, seasonal restriction, lab
thresholds, processing limits), storage and API parameters.

The configuration supports multiple environments (development, production,
testing) selected through the ``AYUTRACE_ENV`` environment variable.
"""

import os
from typing import Any


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Framework configuration settings"""

    # Ledger settings
    DIFFICULTY = int(os.getenv("AYUTRACE_DIFFICULTY", "2"))  # Leading zero hex chars
    LEDGER_NAME = "AyuTrace"

    # Approved harvesting zone (coarse bounding box, degrees)
    APPROVED_LATITUDE_RANGE = (8.0, 37.0)
    APPROVED_LONGITUDE_RANGE = (68.0, 97.0)

    # Seasonal restriction: no wild harvesting in monsoon months (June-September)
    MONSOON_RESTRICTION_ENABLED = _env_flag("AYUTRACE_MONSOON_RESTRICTION", False)
    MONSOON_MONTHS = (6, 7, 8, 9)

    # Laboratory thresholds
    MOISTURE_MAX = 12.0  # percent
    PESTICIDE_MAX = 0.01  # mg/kg

    # Processing limits
    DRYING_TEMPERATURE_MAX = 60.0  # degrees Celsius

    # Sustainability scoring
    OVERHARVEST_QUANTITY_KG = 50.0

    # Storage settings
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///ayutrace.db")

    # API settings
    API_VERSION = "v1"
    API_HOST = "localhost"
    API_PORT = int(os.getenv("AYUTRACE_PORT", "3000"))
    PUBLIC_BASE_URL = os.getenv("AYUTRACE_PUBLIC_URL", "http://localhost:3000")

    # Logging settings
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def get_policy_config(cls) -> dict[str, Any]:
        """Get compliance policy configuration"""
        return {
            "latitude_range": cls.APPROVED_LATITUDE_RANGE,
            "longitude_range": cls.APPROVED_LONGITUDE_RANGE,
            "monsoon_restriction_enabled": cls.MONSOON_RESTRICTION_ENABLED,
            "monsoon_months": cls.MONSOON_MONTHS,
            "moisture_max": cls.MOISTURE_MAX,
            "pesticide_max": cls.PESTICIDE_MAX,
            "drying_temperature_max": cls.DRYING_TEMPERATURE_MAX,
            "overharvest_quantity_kg": cls.OVERHARVEST_QUANTITY_KG
        }

    @classmethod
    def get_api_config(cls) -> dict[str, Any]:
        """Get API configuration"""
        return {
            "version": cls.API_VERSION,
            "host": cls.API_HOST,
            "port": cls.API_PORT,
            "public_base_url": cls.PUBLIC_BASE_URL
        }

    @classmethod
    def validate_config(cls) -> list[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if cls.DIFFICULTY < 0:
            errors.append("DIFFICULTY must be zero or positive")

        if cls.DIFFICULTY > 64:
            errors.append("DIFFICULTY cannot exceed the digest length (64)")

        lat_min, lat_max = cls.APPROVED_LATITUDE_RANGE
        lng_min, lng_max = cls.APPROVED_LONGITUDE_RANGE
        if lat_min > lat_max or lng_min > lng_max:
            errors.append("Approved zone bounds are inverted")

        if any(month < 1 or month > 12 for month in cls.MONSOON_MONTHS):
            errors.append("MONSOON_MONTHS must be calendar months (1-12)")

        if cls.API_PORT <= 0 or cls.API_PORT > 65535:
            errors.append("API_PORT must be between 1 and 65535")

        return errors


# Environment-specific settings
class DevelopmentSettings(Settings):
    """Development environment settings"""
    LOG_LEVEL = "DEBUG"
    API_HOST = "localhost"


class ProductionSettings(Settings):
    """Production environment settings"""
    LOG_LEVEL = "WARNING"
    API_HOST = "0.0.0.0"
    DIFFICULTY = int(os.getenv("AYUTRACE_DIFFICULTY", "3"))


class TestingSettings(Settings):
    """Testing environment settings"""
    LOG_LEVEL = "DEBUG"
    DIFFICULTY = 1  # Cheap sealing for tests
    DATABASE_URL = "sqlite://"


def get_settings() -> Settings:
    """Get settings based on environment variable"""
    env = os.getenv("AYUTRACE_ENV", "development").lower()

    if env == "production":
        return ProductionSettings()
    elif env == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()


# Global settings instance
settings = get_settings()
