from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from the environment or a local .env file."""

    app_name: str = Field(default="Ecommerce Backend API", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")

    # Storage
    database_url: str = Field(default="mongodb://localhost:27017", alias="DATABASE_URL")
    database_name: str = Field(default="ecommerce", alias="DATABASE_NAME")

    # Sessions
    jwt_secret: SecretStr = Field(default=SecretStr("change-me-in-production-please-32b"), alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # HTTP
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    port: int = Field(default=8000, alias="PORT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Optional[str] = Field(default=None, alias="LOG_FORMAT")

    # Cart
    cart_max_retries: int = Field(default=5, ge=1, alias="CART_MAX_RETRIES")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)
