"""
Identity configuration loaded from environment variables.
"""
import string
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_USER_NAME_CHARACTERS = string.ascii_letters + string.digits + "-._@+"


class Settings(BaseSettings):
    """Identity settings from environment variables."""

    model_config = SettingsConfigDict(env_prefix="IDENTITY_", env_file=".env", extra="ignore")

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"
    database_name: str = "identity_db"
    users_collection: str = "users"
    roles_collection: str = "roles"

    # User options
    allowed_user_name_characters: Optional[str] = DEFAULT_ALLOWED_USER_NAME_CHARACTERS
    require_unique_email: bool = False
    require_valid_email: bool = False

    # Password options
    required_length: int = 6
    required_unique_chars: int = 1
    require_non_letter_or_digit: bool = True
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True

    # Lockout
    lockout_allowed_for_new_users: bool = True
    lockout_max_failed_access_attempts: int = 5
    lockout_default_duration: timedelta = timedelta(minutes=5)

    # Password hashing (passlib scheme names, first one hashes new passwords)
    password_hash_schemes: list[str] = ["bcrypt"]

    # Purpose tokens (email confirmation, password reset, ...)
    token_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    token_algorithm: str = "HS256"
    token_lifespan_minutes: int = 24 * 60

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
