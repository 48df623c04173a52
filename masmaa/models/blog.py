"""Blog post data models."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Language = Literal["en", "ar"]

SLUG_PATTERN = r"^[a-z0-9_]+(?:-[a-z0-9_]+)*$"


def _blank_to_none(value: str | None) -> str | None:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Category(BaseModel):
    """Blog category with names in both languages."""

    id: str
    name_en: str
    name_ar: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CategoryCreate(BaseModel):
    name_en: str = Field(..., min_length=1, max_length=100)
    name_ar: str = Field(..., min_length=1, max_length=100)


class BlogPost(BaseModel):
    """Stored bilingual blog post.

    Either language's fields may be null; a post shows up for readers of a
    language only when it has a title in that language.
    """

    id: str
    slug: str = Field(..., pattern=SLUG_PATTERN, max_length=200)
    title_en: str | None = None
    title_ar: str | None = None
    content_en: str | None = None
    content_ar: str | None = None
    excerpt_en: str | None = None
    excerpt_ar: str | None = None
    featured_image_url: str | None = None
    category_id: str
    category_en: str = ""
    category_ar: str = ""
    author_id: str | None = None
    published_date: datetime
    published: bool = False
    admin_notes: str | None = None
    word_count_en: int = 0
    word_count_ar: int = 0
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("published_date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def title(self, language: Language) -> str | None:
        return self.title_ar if language == "ar" else self.title_en

    def content(self, language: Language) -> str | None:
        return self.content_ar if language == "ar" else self.content_en

    def excerpt(self, language: Language) -> str | None:
        return self.excerpt_ar if language == "ar" else self.excerpt_en

    def category_name(self, language: Language) -> str:
        return self.category_ar if language == "ar" else self.category_en


class BlogPostInput(BaseModel):
    """Admin create/update payload. Derived fields are computed on save."""

    slug: str | None = Field(default=None, max_length=200)
    title_en: str | None = Field(default=None, max_length=300)
    title_ar: str | None = Field(default=None, max_length=300)
    content_en: str | None = None
    content_ar: str | None = None
    featured_image_url: str | None = None
    category_id: str = Field(..., min_length=1)
    author_id: str | None = None
    published_date: datetime | None = None
    published: bool = False
    admin_notes: str | None = None

    @field_validator("slug", "title_en", "title_ar", "author_id", mode="before")
    @classmethod
    def _strip_blank(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    @field_validator("title_en", "title_ar")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None

    @model_validator(mode="after")
    def _require_title(self) -> "BlogPostInput":
        if self.title_en is None and self.title_ar is None:
            raise ValueError("At least one title (English or Arabic) is required")
        return self


class SlugRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    post_id: str | None = None


class PreviewRequest(BaseModel):
    content: str = ""
    lang: Language = "en"


class BlogPostSummary(BaseModel):
    """Single-language view of a post for listings."""

    id: str
    slug: str
    title: str
    excerpt: str | None = None
    featured_image_url: str | None = None
    category_id: str
    category: str = ""
    author_id: str | None = None
    published_date: datetime
    word_count: int = 0
    reading_time_minutes: int = 0


class BlogIndex(BaseModel):
    """Blog post listing."""

    posts: list[BlogPostSummary]
    total: int


class AdminBlogIndex(BaseModel):
    posts: list[BlogPost]
    total: int
    page: int = 1
    page_size: int = 15


class BlogPostDetail(BlogPostSummary):
    """Single-language post with its stored markup."""

    content: str | None = None
    available_languages: list[Language] = []


class PreviewResult(BaseModel):
    html: str
    word_count: int
    reading_time_minutes: int
    footnote_count: int
    embed_count: int
