"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: Optional[str] = Field(default=None, description="Full MongoDB connection URL")
    database_name: str = Field(
        default="store",
        validation_alias=AliasChoices("database_name", "mongo_db_name", "vite_mongo_db_name"),
        description="MongoDB database name",
    )
    mongo_username: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("mongo_username", "vite_mongo_username")
    )
    mongo_password: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("mongo_password", "vite_mongo_password")
    )
    mongo_cluster: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("mongo_cluster", "vite_mongo_cluster"),
        description="Atlas cluster host, e.g. cluster0.abcde.mongodb.net",
    )
    mongo_timeout_ms: int = Field(default=5000, description="Server selection timeout (ms)")

    # Razorpay Configuration
    razorpay_key_id: Optional[str] = Field(default=None, description="Razorpay key id (rzp_...)")
    razorpay_secret: Optional[str] = Field(default=None, description="Razorpay key secret")
    payment_currency: str = Field(default="INR", description="Currency for payment orders")
    require_payment_signature: bool = Field(
        default=False,
        description="Reject /store-order requests without a valid payment signature",
    )

    # Application Configuration
    app_name: str = Field(default="storefront-api", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=5000, description="API port")
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def mongo_uri(self) -> Optional[str]:
        """
        Resolve the MongoDB connection URI.

        DATABASE_URL wins; otherwise an Atlas SRV URI is assembled from the
        username, password and cluster settings. Returns None when neither
        is configured.
        """
        if self.database_url:
            return self.database_url
        if not (self.mongo_username and self.mongo_password and self.mongo_cluster):
            return None
        return (
            f"mongodb+srv://{quote_plus(self.mongo_username)}:{quote_plus(self.mongo_password)}"
            f"@{self.mongo_cluster}/{self.database_name}?retryWrites=true&w=majority"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
