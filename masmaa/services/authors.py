"""Author profiles and the public author page."""

import logging
import uuid
from datetime import datetime, timezone

from masmaa.models.author import Author, AuthorInput, AuthorProfile
from masmaa.models.blog import Language
from masmaa.services import blob_storage, blog_posts
from masmaa.services.blob_storage import AUTHORS, BLOG_POSTS, UniqueViolationError
from masmaa.services.blog_helpers import slugify
from masmaa.services.media_storage import delete_media

logger = logging.getLogger(__name__)


class AuthorError(Exception):
    """Base error for author operations."""


class AuthorNotFoundError(AuthorError):
    pass


class AuthorValidationError(AuthorError):
    pass


class DuplicateAuthorSlugError(AuthorError):
    pass


# -- Reads ----------------------------------------------------------------------


async def list_authors() -> list[Author]:
    """Every author, most recently added first."""
    rows = await blob_storage.select(AUTHORS, order_by="created_at", descending=True)
    return [Author(**row) for row in rows]


async def get_author(author_id: str) -> Author | None:
    row = await blob_storage.get_row(AUTHORS, author_id)
    return Author(**row) if row else None


async def get_author_by_slug(slug: str) -> Author | None:
    rows = await blob_storage.select(AUTHORS, {"slug": slug})
    return Author(**rows[0]) if rows else None


async def author_profile(slug: str, language: Language) -> AuthorProfile:
    """An author's page: their published posts visible in ``language``, newest first."""
    author = await get_author_by_slug(slug)
    if author is None:
        raise AuthorNotFoundError("Author not found")
    posts = [
        p
        for p in await blog_posts.list_posts()
        if p.author_id == author.id and p.published and blog_posts.visible_in(p, language)
    ]
    return AuthorProfile(
        id=author.id,
        slug=author.slug,
        name=author.name(language),
        bio=author.bio(language),
        profile_image_url=author.profile_image_url,
        email=author.email,
        posts=[blog_posts.to_summary(p, language) for p in posts],
    )


async def generate_unique_author_slug(base: str, current_id: str | None = None) -> str:
    root = slugify(base)
    taken = {
        row["slug"]
        for row in await blob_storage.read_collection(AUTHORS)
        if row.get("id") != current_id
    }
    slug = root
    counter = 1
    while slug in taken:
        slug = f"{root}-{counter}"
        counter += 1
    return slug


# -- Writes -----------------------------------------------------------------------


async def _resolve_slug(data: AuthorInput, current_id: str | None) -> str:
    if data.slug:
        slug = slugify(data.slug)
    else:
        slug = await generate_unique_author_slug(data.name_en or data.name_ar, current_id)
    if not slug:
        raise AuthorValidationError("Slug is required")
    return slug


async def create_author(data: AuthorInput, now: datetime | None = None) -> Author:
    now = now or datetime.now(timezone.utc)
    author = Author(
        **data.model_dump(exclude={"slug"}),
        id=str(uuid.uuid4()),
        slug=await _resolve_slug(data, None),
        created_at=now,
        updated_at=now,
    )
    try:
        await blob_storage.insert_row(AUTHORS, author.model_dump(mode="json"))
    except UniqueViolationError as e:
        raise DuplicateAuthorSlugError(f"Slug {author.slug!r} is already in use") from e
    logger.info("Created author %s (%s)", author.id, author.slug)
    return author


async def update_author(
    author_id: str, data: AuthorInput, now: datetime | None = None
) -> Author:
    """Replace an author's fields; a replaced profile image is deleted best effort."""
    existing = await get_author(author_id)
    if existing is None:
        raise AuthorNotFoundError("Author not found")
    slug = await _resolve_slug(data, author_id) if data.slug else existing.slug
    author = existing.model_copy(
        update={
            **data.model_dump(exclude={"slug"}),
            "slug": slug,
            "updated_at": now or datetime.now(timezone.utc),
        }
    )
    try:
        await blob_storage.update_row(AUTHORS, author_id, author.model_dump(mode="json"))
    except UniqueViolationError as e:
        raise DuplicateAuthorSlugError(f"Slug {author.slug!r} is already in use") from e

    old_image = existing.profile_image_url
    if old_image and old_image != author.profile_image_url:
        await delete_media(old_image)
    logger.info("Updated author %s", author_id)
    return author


async def delete_author(author_id: str) -> int:
    """Delete an author. Their posts stay, without an author.

    Returns the number of posts that lost their author.
    """
    existing = await get_author(author_id)
    if existing is None:
        raise AuthorNotFoundError("Author not found")
    if existing.profile_image_url:
        await delete_media(existing.profile_image_url)
    await blob_storage.delete_row(AUTHORS, author_id)

    rows = await blob_storage.read_collection(BLOG_POSTS)
    detached = 0
    for row in rows:
        if row.get("author_id") == author_id:
            row["author_id"] = None
            detached += 1
    if detached:
        await blob_storage.write_all(BLOG_POSTS, rows)
    logger.info("Deleted author %s (%d posts detached)", author_id, detached)
    return detached
