from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingCredentialError(RuntimeError):
    """Raised at startup when no API key is configured."""


class Settings(BaseSettings):
    """Runtime configuration for the Image Weaver application."""

    #----------------------------------------------------------
    # External API settings
    #----------------------------------------------------------
    api_key: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("API_KEY", "IMAGEWEAVER_API_KEY"),
        description="API key for authenticating with the image generation service.",
    )

    image_model_id: str = Field(
        default="imagen-4.0-generate-001",
        description="Model identifier sent with every image generation request.",
    )

    #----------------------------------------------------------
    # Server settings
    #----------------------------------------------------------
    host: str = Field(
        default="0.0.0.0",
        description="Interface the web server binds to.",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port the web server listens on.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level used by the entry point.",
    )

    model_config = SettingsConfigDict(
        env_prefix="IMAGEWEAVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


def load_settings(**overrides) -> Settings:
    """Build settings, failing fast when the API key is absent or blank."""
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        if any(err["loc"] and err["loc"][0] in ("api_key", "API_KEY", "IMAGEWEAVER_API_KEY") for err in exc.errors()):
            raise MissingCredentialError("API_KEY environment variable is not set.") from exc
        raise

    if not settings.api_key.get_secret_value().strip():
        raise MissingCredentialError("API_KEY environment variable is not set.")
    return settings


@lru_cache
def get_settings() -> Settings:
    return load_settings()
