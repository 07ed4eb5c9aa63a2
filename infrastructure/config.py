from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Service settings
    service_name: str = "hotel-back-office"
    service_version: str = "1.0.0"
    log_level: str = "INFO"

    # Auth settings
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    bcrypt_rounds: int = 12
    # bcrypt ignores input past this many bytes
    bcrypt_max_password_bytes: int = 72

    # Reservation policy
    pending_holds_room: bool = True

    # Listing
    default_page_size: int = 10
    max_page_size: int = 100

    class Config:
        env_file = ".env"
        env_prefix = "HOTEL_"
        case_sensitive = False


settings = Settings()
