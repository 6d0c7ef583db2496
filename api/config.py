"""
API configuration settings.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "secret"


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Wookie Books API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Security Settings
    # The fallback secret is for local development only
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: Optional[int] = None
    bcrypt_rounds: int = 10

    # CORS Settings
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    def uses_default_secret(self) -> bool:
        """Check if the development fallback JWT secret is in use."""
        return self.jwt_secret == DEFAULT_JWT_SECRET


# Global config instance
config = APIConfig()
