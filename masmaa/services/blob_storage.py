"""Azure Blob Storage content store.

Each collection is one JSON document (a list of rows) in the content
container. Rows are plain dicts as produced by ``model_dump(mode="json")``.
Writes replace the whole document, so concurrent writers to the same
collection are last-write-wins.
"""

import json
import logging
from typing import Any

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.identity import ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from masmaa.config import get_settings

logger = logging.getLogger(__name__)

BLOG_POSTS = "blog_posts"
EDITORS_PICKS = "editors_picks"
CATEGORIES = "categories"
AUTHORS = "authors"

COLLECTION_BLOBS = {
    BLOG_POSTS: "blog-posts.json",
    EDITORS_PICKS: "editors-picks.json",
    CATEGORIES: "categories.json",
    AUTHORS: "authors.json",
}

# Fields that must be unique within a collection.
UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    BLOG_POSTS: ("slug",),
    EDITORS_PICKS: ("blog_post_id",),
    CATEGORIES: (),
    AUTHORS: ("slug",),
}

SETTINGS_BLOB = "editors-choice-settings.json"


class StorageError(Exception):
    """The content store could not be read or written."""


class UniqueViolationError(StorageError):
    """A write would duplicate a unique field."""

    def __init__(self, collection: str, field: str, value: Any):
        super().__init__(f"Duplicate {field} {value!r} in {collection}")
        self.collection = collection
        self.field = field
        self.value = value


# Lazy singleton, lives for the process lifetime
_container_client: ContainerClient | None = None


def _get_credential() -> ManagedIdentityCredential:
    """Return Managed Identity credential."""
    settings = get_settings()
    return ManagedIdentityCredential(client_id=settings.managed_identity_client_id)


def account_url() -> str:
    return f"https://{get_settings().azure_storage_account}.blob.core.windows.net"


def create_container_client(container_name: str) -> ContainerClient:
    """Create a ContainerClient for the given container."""
    return ContainerClient(
        account_url=account_url(),
        container_name=container_name,
        credential=_get_credential(),
    )


def _get_container_client() -> ContainerClient:
    """Return a shared container client for content documents (lazy singleton)."""
    global _container_client
    if _container_client is None:
        _container_client = create_container_client(
            get_settings().azure_content_container
        )
    return _container_client


def check_storage_connectivity() -> bool:
    """Storage connectivity check: lists at most one blob."""
    try:
        client = _get_container_client()
        next(client.list_blobs(results_per_page=1).__iter__())
        return True
    except StopIteration:
        # Empty container still means connected
        return True
    except Exception:
        return False


# -- Raw documents ------------------------------------------------------------


async def read_document(blob_name: str) -> Any | None:
    """Read and decode a JSON blob. Returns None when the blob does not exist."""
    client = _get_container_client()
    try:
        data = client.get_blob_client(blob_name).download_blob().readall()
    except ResourceNotFoundError:
        return None
    except HttpResponseError as e:
        logger.warning("Azure API error reading %s: %s", blob_name, e.message)
        raise StorageError(f"Could not read {blob_name}") from e
    try:
        return json.loads(data)
    except ValueError as e:
        logger.error("Corrupt JSON in %s: %s", blob_name, e)
        raise StorageError(f"Could not decode {blob_name}") from e


async def write_document(blob_name: str, data: Any) -> None:
    client = _get_container_client()
    try:
        client.get_blob_client(blob_name).upload_blob(
            json.dumps(data, indent=2, ensure_ascii=False),
            overwrite=True,
            content_settings=ContentSettings(content_type="application/json"),
        )
    except HttpResponseError as e:
        logger.warning("Azure API error writing %s: %s", blob_name, e.message)
        raise StorageError(f"Could not write {blob_name}") from e


# -- Collections ----------------------------------------------------------------


async def read_collection(collection: str) -> list[dict[str, Any]]:
    """Return every row of a collection; a missing collection is empty.

    Read failures raise ``StorageError`` rather than returning an empty list,
    so a failed read can never be written back over the stored rows.
    """
    data = await read_document(COLLECTION_BLOBS[collection])
    if data is None:
        return []
    # Handle both list format and dict format ({"rows": [...]})
    if isinstance(data, dict):
        data = data.get("rows", [])
    return list(data)


async def write_all(collection: str, rows: list[dict[str, Any]]) -> None:
    """Replace a collection's rows in a single write."""
    _check_unique(collection, rows)
    await write_document(COLLECTION_BLOBS[collection], rows)


def _check_unique(collection: str, rows: list[dict[str, Any]]) -> None:
    for field in UNIQUE_KEYS.get(collection, ()):
        seen: set[Any] = set()
        for row in rows:
            value = row.get(field)
            if value is None:
                continue
            if value in seen:
                raise UniqueViolationError(collection, field, value)
            seen.add(value)


async def select(
    collection: str,
    filters: dict[str, Any] | None = None,
    order_by: str | None = None,
    descending: bool = False,
) -> list[dict[str, Any]]:
    """Rows matching every equality filter, optionally ordered by a field.

    Rows with a null ordering field sort last in either direction.
    """
    rows = await read_collection(collection)
    if filters:
        rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
    if order_by:
        present = [r for r in rows if r.get(order_by) is not None]
        missing = [r for r in rows if r.get(order_by) is None]
        present.sort(key=lambda r: r[order_by], reverse=descending)
        rows = present + missing
    return rows


async def get_row(collection: str, row_id: str) -> dict[str, Any] | None:
    for row in await read_collection(collection):
        if row.get("id") == row_id:
            return row
    return None


async def insert_row(collection: str, row: dict[str, Any]) -> dict[str, Any]:
    """Append a row; raises ``UniqueViolationError`` on a unique-key clash."""
    rows = await read_collection(collection)
    if any(r.get("id") == row.get("id") for r in rows):
        raise UniqueViolationError(collection, "id", row.get("id"))
    rows.append(row)
    await write_all(collection, rows)
    return row


async def update_row(
    collection: str, row_id: str, changes: dict[str, Any]
) -> dict[str, Any] | None:
    """Merge ``changes`` into a row. Returns None when the row does not exist."""
    rows = await read_collection(collection)
    for i, row in enumerate(rows):
        if row.get("id") == row_id:
            rows[i] = {**row, **changes, "id": row_id}
            await write_all(collection, rows)
            return rows[i]
    return None


async def delete_row(collection: str, row_id: str) -> bool:
    rows = await read_collection(collection)
    remaining = [r for r in rows if r.get("id") != row_id]
    if len(remaining) == len(rows):
        return False
    await write_all(collection, remaining)
    return True

