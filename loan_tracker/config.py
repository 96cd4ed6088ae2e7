"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./loan_tracker.db"

    # Service
    service_name: str = "loan-tracker"
    log_level: str = "INFO"

    # Loan operations
    default_payment_method: str = "Online"
    upcoming_payment_window_days: int = 7
    recent_application_window_days: int = 30

    # Listing
    default_page_size: int = 20
    max_page_size: int = 100


settings = Settings()
