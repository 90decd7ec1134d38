from pydantic import model_validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 3100
    debug: bool = False
    cors_origins: list[str] = []
    frontend_url: str  # URL of the frontend application, used to build magic links
    admin_email: str = "admin@example.com"  # Bootstrapped as admin on startup
    cookie_secure: bool = True  # Disable only for plain-HTTP local development
    session_lifetime_days: int = 30
    session_renewal_window_days: int = 15
    invitation_ttl_minutes: int = 30
    smtp_host: str | None = None  # Without it magic links are kept in an in-process outbox
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = True
    mail_sender: str = "noreply@codeassess.local"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "CODEASSESS_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_session_window(self) -> "Config":
        if not 0 < self.session_renewal_window_days < self.session_lifetime_days:
            raise ValueError("session_renewal_window_days must be positive and shorter than session_lifetime_days")
        return self
