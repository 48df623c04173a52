"""Author profile models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from masmaa.models.blog import SLUG_PATTERN, BlogPostSummary, Language

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Author(BaseModel):
    """Stored author with a name in both languages."""

    id: str
    slug: str = Field(..., pattern=SLUG_PATTERN, max_length=200)
    name_en: str
    name_ar: str
    bio_en: str | None = None
    bio_ar: str | None = None
    profile_image_url: str | None = None
    email: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def name(self, language: Language) -> str:
        return self.name_ar if language == "ar" else self.name_en

    def bio(self, language: Language) -> str | None:
        return self.bio_ar if language == "ar" else self.bio_en


class AuthorInput(BaseModel):
    """Admin create/update payload. Both names are required."""

    slug: str | None = Field(default=None, max_length=200)
    name_en: str = Field(..., min_length=1, max_length=200)
    name_ar: str = Field(..., min_length=1, max_length=200)
    bio_en: str | None = Field(default=None, max_length=5000)
    bio_ar: str | None = Field(default=None, max_length=5000)
    profile_image_url: str | None = None
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)

    @field_validator(
        "slug", "bio_en", "bio_ar", "profile_image_url", "email", mode="before"
    )
    @classmethod
    def _strip_blank(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("name_en", "name_ar", mode="before")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value


class AuthorProfile(BaseModel):
    """Public author page in one language with the author's published posts."""

    id: str
    slug: str
    name: str
    bio: str | None = None
    profile_image_url: str | None = None
    email: str | None = None
    posts: list[BlogPostSummary]
