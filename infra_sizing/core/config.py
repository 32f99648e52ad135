"""
Configuration module for loading environment variables.
Only the HTTP surface reads this; the engine takes its constants through
the pricing tables and function arguments.
"""
import os


class Config:
    """Application configuration loaded from environment variables."""

    APP_TITLE: str = os.getenv("APP_TITLE", "Infrastructure Sizing Calculator")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Request limits
    MAX_REQUEST_BODY_SIZE: int = int(os.getenv("MAX_REQUEST_BODY_SIZE", "262144"))  # 256 KB
    MAX_ENVIRONMENTS: int = int(os.getenv("MAX_ENVIRONMENTS", "5"))
    MAX_PROJECTION_YEARS: int = int(os.getenv("MAX_PROJECTION_YEARS", "10"))

    # Pricing assumptions
    HOURS_PER_MONTH: int = 730  # 24/7 operation
    MONTHS_PER_YEAR: int = 12

    @classmethod
    def validate(cls) -> None:
        """
        Validates configuration values.

        Raises:
            ValueError: If any configuration value is missing or invalid.
        """
        if not cls.APP_TITLE:
            raise ValueError("APP_TITLE is required")
        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level (got: {cls.LOG_LEVEL})")
        if cls.MAX_REQUEST_BODY_SIZE <= 0:
            raise ValueError("MAX_REQUEST_BODY_SIZE must be positive")
        if not 1 <= cls.MAX_ENVIRONMENTS <= 5:
            raise ValueError("MAX_ENVIRONMENTS must be between 1 and 5")
        if not 1 <= cls.MAX_PROJECTION_YEARS <= 10:
            raise ValueError("MAX_PROJECTION_YEARS must be between 1 and 10")


config = Config()
