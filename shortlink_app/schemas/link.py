from pydantic import BaseModel, AnyHttpUrl, Field, TypeAdapter, ValidationError, computed_field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
from shortlink_app.config import settings
from shortlink_app.services.intervals import as_utc

# AnyHttpUrl has no length cap, unlike HttpUrl
_http_url = TypeAdapter(AnyHttpUrl)


class ShortenRequest(BaseModel):
    """Body of ``POST /api/shorten``.

    Only the shape is checked here. Slug length and charset rules live in
    ``validate_custom_slug`` so they raise the same error everywhere.
    """
    original_url: str = Field(..., alias="originalUrl", description="The URL to shorten")
    custom_slug: Optional[str] = Field(None, alias="customSlug", description="Optional alphanumeric slug, 3-30 characters")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("original_url")
    @classmethod
    def _http_or_https_url(cls, value: str) -> str:
        # Validated as a URL but stored exactly as submitted, not normalized
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("originalUrl must be an absolute http or https URL")
        return value


class ShortenResponse(BaseModel):
    slug: str

    @computed_field(alias="shortUrl")
    @property
    def short_url(self) -> str:
        """Computed field - automatically generated from slug"""
        return f"{settings.base_url}/{self.slug}"

    model_config = ConfigDict(from_attributes=True)


class LinkSummary(BaseModel):
    """One row of ``GET /api/urls``, read straight from the Link model."""
    slug: str
    original_url: str = Field(..., alias="originalUrl")
    hit_count: int = Field(..., alias="hitCount")
    created_at: datetime = Field(..., alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("created_at")
    @classmethod
    def _created_at_in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class DeleteResponse(BaseModel):
    message: str
