"""Editors' Choice data models."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from masmaa.models.blog import BlogPostSummary

PickStatus = Literal["active", "scheduled", "expired"]

MIN_SLOTS = 2
MAX_SLOTS = 6


def as_utc(value: datetime | None) -> datetime | None:
    # Naive timestamps are read as UTC so they compare with aware ones.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EditorsPick(BaseModel):
    """A post scheduled into Editors' Choice."""

    id: str
    blog_post_id: str
    display_order: int = Field(..., ge=0)
    scheduled_start: datetime
    scheduled_end: datetime | None = None
    selected_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("scheduled_start", "scheduled_end", "created_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class PickCreate(BaseModel):
    """Add a post. Omitted start means now; omitted end means start + 7 days
    unless ``no_end_date`` is set."""

    blog_post_id: str = Field(..., min_length=1)
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    no_end_date: bool = False

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class PickWindow(BaseModel):
    scheduled_start: datetime
    scheduled_end: datetime | None = None

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class PickOrder(BaseModel):
    pick_ids: list[str]


class PickMove(BaseModel):
    to_index: int = Field(..., ge=0)


class EditorsChoiceSettings(BaseModel):
    max_slots: int = Field(default=MAX_SLOTS, ge=MIN_SLOTS, le=MAX_SLOTS)


class PickView(BaseModel):
    """Admin view of a pick with its derived status."""

    pick: EditorsPick
    status: PickStatus
    post_title_en: str | None = None
    post_title_ar: str | None = None


class EditorsChoiceState(BaseModel):
    picks: list[PickView]
    max_slots: int
    count: int
    can_add: bool


class EditorsChoiceFeed(BaseModel):
    """Public home page feed of active picks."""

    posts: list[BlogPostSummary]
    total: int
