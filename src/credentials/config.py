"""Configuration for the credential pool."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CredentialsConfig(BaseSettings):
    """Settings for credential selection and failure tracking."""

    model_config = SettingsConfigDict(
        env_prefix="CREDENTIALS_",
        case_sensitive=False,
        extra="ignore",
    )

    max_error_count: int = Field(
        default=3,
        ge=1,
        description="Credentials at or above this error count are skipped until reset",
    )
    register_env_cookie: bool = Field(
        default=True,
        description="Add BILIBILI_COOKIE from the environment to the pool on startup",
    )
