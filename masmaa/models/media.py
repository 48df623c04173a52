"""Media upload models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

UploadType = Literal["featured_image", "content_image", "author_profile"]


class UploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str
    upload_type: UploadType = "content_image"


class UploadTarget(BaseModel):
    """Write-only upload URL for one object plus its permanent public URL."""

    upload_url: str
    public_url: str
    key: str
    max_size: int
    content_type: str
    expires_at: datetime


class UploadResult(BaseModel):
    public_url: str
    key: str
    size: int


class DeleteMediaRequest(BaseModel):
    file_url: str = Field(..., min_length=1)
