from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Database
    database_url: str

    # Email
    email_mode: str = "dev"  # dev | prod
    sendgrid_api_key: str = ""
    email_from: str = "Job Board <team@jobboard.dev>"
    admin_email: str = "team@jobboard.dev"

    # Admin actions (approve / disapprove / delete / sweeps)
    admin_token: str

    # Payments
    stripe_key: str = ""
    stripe_endpoint_secret: str = ""

    # Currency by IP
    ipgeolocation_api_key: str = ""
    ipgeolocation_timeout_seconds: int = 5

    # Listing
    jobs_per_page: int = 20

    # Periodic sweeps (ad demotion, apply token cleanup)
    sweeps_enabled: bool = True
    sweep_interval_minutes: int = 60

    # App
    site_url: str = "http://localhost:8000"
    debug: bool = False
    allowed_origins: str = ""


settings = Settings()
