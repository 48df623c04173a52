"""Uploaded media in Azure Blob Storage.

Uploads are two-phase: ``create_upload_target`` returns a short-lived,
write-only SAS URL for one blob key, then the bytes are PUT to it (by the
browser, or server-side through ``upload_media``). A target that is never
used simply expires; nothing cleans up after it.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    generate_blob_sas,
)

from masmaa.config import get_settings
from masmaa.models.media import UploadResult, UploadTarget
from masmaa.services.blob_storage import _get_credential, account_url
from masmaa.services.http_client import get_shared_client

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
)

UPLOAD_FOLDERS = {
    "featured_image": "blog/featured/",
    "content_image": "blog/content/",
    "author_profile": "blog/authors/",
}

MB = 1024 * 1024
DEFAULT_MAX_SIZE = 10 * MB
MAX_SIZES = {"author_profile": 5 * MB}

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


class MediaError(Exception):
    """Media storage operation failed."""


class UploadValidationError(MediaError):
    """The upload request is not acceptable (type, size, upload type)."""


_service_client: BlobServiceClient | None = None


def _get_service_client() -> BlobServiceClient:
    """Return a shared BlobServiceClient (lazy singleton).

    User delegation keys are issued at the account level, so this is a
    service client rather than a container client.
    """
    global _service_client
    if _service_client is None:
        _service_client = BlobServiceClient(
            account_url=account_url(), credential=_get_credential()
        )
    return _service_client


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_RE.sub("_", filename)


def max_size_for(upload_type: str) -> int:
    return MAX_SIZES.get(upload_type, DEFAULT_MAX_SIZE)


def build_key(upload_type: str, filename: str, now: datetime) -> str:
    """``<folder><unix millis>-<sanitized filename>``."""
    millis = int(now.timestamp() * 1000)
    return f"{UPLOAD_FOLDERS[upload_type]}{millis}-{sanitize_filename(filename)}"


def public_url_for(key: str) -> str:
    settings = get_settings()
    if settings.media_public_domain:
        return f"https://{settings.media_public_domain}/{key}"
    return f"{account_url()}/{settings.azure_media_container}/{key}"


def key_from_url(file_url: str) -> str | None:
    """Blob key for a public media URL, or None if the URL is not ours."""
    settings = get_settings()
    parsed = urlparse(file_url)
    path = parsed.path.lstrip("/")
    if settings.media_public_domain and parsed.netloc == settings.media_public_domain:
        return path or None
    if parsed.netloc == urlparse(account_url()).netloc:
        prefix = f"{settings.azure_media_container}/"
        if path.startswith(prefix) and len(path) > len(prefix):
            return path[len(prefix) :]
    return None


def validate_upload(content_type: str, upload_type: str) -> None:
    if upload_type not in UPLOAD_FOLDERS:
        raise UploadValidationError(f"Invalid upload type: {upload_type}")
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UploadValidationError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_CONTENT_TYPES)}"
        )


async def create_upload_target(
    filename: str,
    content_type: str,
    upload_type: str = "content_image",
    now: datetime | None = None,
) -> UploadTarget:
    """Issue a write-only SAS URL for a new media object."""
    validate_upload(content_type, upload_type)
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=settings.upload_url_expiry_seconds)
    key = build_key(upload_type, filename, now)

    client = _get_service_client()
    try:
        delegation_key = client.get_user_delegation_key(
            key_start_time=now - timedelta(minutes=5), key_expiry_time=expires_at
        )
        sas = generate_blob_sas(
            account_name=settings.azure_storage_account,
            container_name=settings.azure_media_container,
            blob_name=key,
            user_delegation_key=delegation_key,
            permission=BlobSasPermissions(create=True, write=True),
            expiry=expires_at,
            start=now - timedelta(minutes=5),
        )
    except Exception as e:
        logger.error("Could not issue upload URL for %s: %s", key, e)
        raise MediaError("Failed to generate upload URL") from e

    logger.info("Issued upload target %s (expires %s)", key, expires_at.isoformat())
    return UploadTarget(
        upload_url=f"{account_url()}/{settings.azure_media_container}/{key}?{sas}",
        public_url=public_url_for(key),
        key=key,
        max_size=max_size_for(upload_type),
        content_type=content_type,
        expires_at=expires_at,
    )


async def upload_media(target: UploadTarget, data: bytes) -> UploadResult:
    """Second upload phase: PUT the bytes to the target's SAS URL."""
    if not data:
        raise UploadValidationError("Empty upload")
    if len(data) > target.max_size:
        raise UploadValidationError(
            f"File must be less than {target.max_size // MB}MB"
        )

    client = get_shared_client()
    resp = await client.put(
        target.upload_url,
        content=data,
        headers={"x-ms-blob-type": "BlockBlob", "Content-Type": target.content_type},
    )
    if resp.status_code not in (200, 201):
        logger.warning("Upload of %s failed with HTTP %d", target.key, resp.status_code)
        raise MediaError("Failed to upload file")
    return UploadResult(public_url=target.public_url, key=target.key, size=len(data))


async def delete_media(file_url: str | None) -> bool:
    """Best-effort delete of an uploaded object by its public URL.

    Never raises; failures are logged. Returns True if an object was removed.
    """
    if not file_url:
        return False
    key = key_from_url(file_url)
    if key is None:
        logger.info("Not deleting %s: not a media URL", file_url)
        return False
    try:
        container = _get_service_client().get_container_client(
            get_settings().azure_media_container
        )
        container.delete_blob(key)
        logger.info("Deleted media %s", key)
        return True
    except ResourceNotFoundError:
        return False
    except Exception:
        logger.warning("Could not delete media %s", key, exc_info=True)
        return False
