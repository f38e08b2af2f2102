"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "BudgetPlan"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./budgetplan.db"

    # Organization used when a request carries no X-Organization-ID header
    default_organization_id: int = 1

    # Match scoring
    match_confidence_high: float = 0.70
    match_confidence_medium: float = 0.50
    match_confidence_low: float = 0.30
    match_date_proximity_days: int = 3

    # Budget variance, as a percentage of the planned amount
    variance_minor_percent: float = 1.0
    variance_major_percent: float = 10.0

    # Income allocation band, as a percentage of total income
    unallocated_income_threshold_percent: float = 0.25

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
