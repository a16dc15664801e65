"""Configuration for data source management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourcesConfig(BaseSettings):
    """Settings for data source seeding."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        case_sensitive=False,
        extra="ignore",
    )

    seed_on_init: bool = Field(
        default=True,
        description="Seed the default data sources on startup when the table is empty",
    )
    seed_file: str | None = Field(
        default=None,
        description="Alternative JSON seed file (defaults to the bundled default_sources.json)",
    )
