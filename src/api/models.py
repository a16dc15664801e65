"""
Request and response models for the admin API.

Request bodies use the console's camelCase field names as aliases; every
response is wrapped in the {code, message, data} envelope.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    """Response envelope. code=0 on success, otherwise the HTTP status."""

    code: int = Field(default=0, description="0 on success, HTTP status on failure")
    message: str = Field(default="ok", description="Human-readable outcome")
    data: Any = Field(default=None, description="Payload")


def ok(data: Any = None, message: str = "ok") -> dict[str, Any]:
    """Build a success envelope."""
    return {"code": 0, "message": message, "data": data}


def error_body(code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build a failure envelope."""
    return {"code": code, "message": message, "data": data}


# Data sources


class UpdateDataSourceRequest(BaseModel):
    """Editable data source fields. Omitted fields stay unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str | None = Field(default=None, alias="displayName", max_length=200)
    api_base_url: str | None = Field(default=None, alias="apiBaseUrl", max_length=500)
    api_key: str | None = Field(default=None, alias="apiKey", max_length=500)
    tags: list[str] | None = Field(default=None, max_length=50)
    config: dict[str, Any] | None = Field(
        default=None,
        description="Provider options (query, maxResults, task, platform, ...)",
    )


class ToggleDataSourceRequest(BaseModel):
    enabled: bool | None = Field(
        default=None,
        description="Target state; omitted flips the current state",
    )


class SyncSourceRequest(BaseModel):
    """
    Per-run adapter overrides.

    Known options are typed; any other field is passed to the adapter
    as-is, so provider-specific options need no API change.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    query: str | None = Field(default=None, max_length=500)
    max_results: int | None = Field(default=None, alias="maxResults", ge=1, le=500)
    year: str | int | None = Field(default=None, description="Semantic Scholar year or range")
    fields_of_study: str | list[str] | None = Field(default=None, alias="fieldsOfStudy")
    days: int | None = Field(default=None, ge=1, le=365)
    force: bool = Field(default=False, description="Sync even if the source is disabled")

    def overrides(self) -> dict[str, Any]:
        """Adapter config overrides in the console's camelCase keys."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"force"})


# Keyword sync


class KeywordSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_type: str = Field(
        default="all",
        alias="sourceType",
        pattern="^(all|admin|user)$",
        description="Keyword origin filter",
    )
    days: int | None = Field(default=None, ge=1, le=365)
    max_results_per_keyword: int | None = Field(
        default=None, alias="maxResultsPerKeyword", ge=1, le=100
    )


# Credentials


class CreateCredentialRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    secret_value: str = Field(..., alias="secretValue", min_length=1)


# Keywords


class CreateKeywordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keyword: str = Field(..., min_length=1, max_length=200)
    scope: str = Field(default="paper", pattern="^(paper|video|news)$")
    category: str | None = Field(default=None, max_length=100)
    source_type: str = Field(default="admin", alias="sourceType", pattern="^(admin|user)$")
    is_active: bool = Field(default=True, alias="isActive")
    priority: int = Field(default=50, ge=0, le=100)
    description: str | None = Field(default=None, max_length=1000)
    tags: list[str] = Field(default_factory=list)


class UpdateKeywordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keyword: str | None = Field(default=None, min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)
    source_type: str | None = Field(default=None, alias="sourceType", pattern="^(admin|user)$")
    is_active: bool | None = Field(default=None, alias="isActive")
    priority: int | None = Field(default=None, ge=0, le=100)
    description: str | None = Field(default=None, max_length=1000)
    tags: list[str] | None = None


class BatchCreateKeywordsRequest(BaseModel):
    keywords: list[CreateKeywordRequest] = Field(..., min_length=1, max_length=500)


# Health


class ComponentHealth(BaseModel):
    """Health status of a single infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency")
    details: dict[str, Any] = Field(default_factory=dict)
