"""Blog post and category persistence with derived metadata."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError

from masmaa.models.blog import (
    AdminBlogIndex,
    BlogIndex,
    BlogPost,
    BlogPostInput,
    BlogPostSummary,
    Category,
    CategoryCreate,
    Language,
)
from masmaa.services import blob_storage
from masmaa.services.blob_storage import AUTHORS, BLOG_POSTS, CATEGORIES, UniqueViolationError
from masmaa.services.blog_helpers import (
    calculate_reading_time,
    count_words,
    generate_excerpt,
    matches_search,
    slugify,
)
from masmaa.services.media_storage import delete_media

logger = logging.getLogger(__name__)

PostStatus = Literal["all", "published", "draft"]


class BlogPostError(Exception):
    """Base error for blog post operations."""


class PostNotFoundError(BlogPostError):
    pass


class PostValidationError(BlogPostError):
    pass


class DuplicateSlugError(BlogPostError):
    pass


class CategoryInUseError(BlogPostError):
    pass


# -- Derived fields -----------------------------------------------------------


def visible_in(post: BlogPost, language: Language) -> bool:
    """A post is shown to a language's readers only if it has a title in it."""
    return post.title(language) is not None


def to_summary(post: BlogPost, language: Language) -> BlogPostSummary:
    content = post.content(language)
    return BlogPostSummary(
        id=post.id,
        slug=post.slug,
        title=post.title(language) or "",
        excerpt=post.excerpt(language),
        featured_image_url=post.featured_image_url,
        category_id=post.category_id,
        category=post.category_name(language),
        author_id=post.author_id,
        published_date=post.published_date,
        word_count=post.word_count_ar if language == "ar" else post.word_count_en,
        reading_time_minutes=calculate_reading_time(content),
    )


def derive_fields(data: BlogPostInput, category: Category) -> dict[str, Any]:
    """Excerpts, word counts and category names computed from the input."""
    content_en = (data.content_en or "").strip()
    content_ar = (data.content_ar or "").strip()
    return {
        "content_en": content_en or None,
        "content_ar": content_ar or None,
        "excerpt_en": generate_excerpt(content_en) if content_en else None,
        "excerpt_ar": generate_excerpt(content_ar) if content_ar else None,
        "word_count_en": count_words(content_en),
        "word_count_ar": count_words(content_ar),
        "category_en": category.name_en,
        "category_ar": category.name_ar,
    }


# -- Reads ----------------------------------------------------------------------


async def list_posts() -> list[BlogPost]:
    posts = [BlogPost(**row) for row in await blob_storage.read_collection(BLOG_POSTS)]
    posts.sort(key=lambda p: p.published_date, reverse=True)
    return posts


async def get_post(post_id: str) -> BlogPost | None:
    row = await blob_storage.get_row(BLOG_POSTS, post_id)
    return BlogPost(**row) if row else None


async def get_post_by_slug(slug: str) -> BlogPost | None:
    rows = await blob_storage.select(BLOG_POSTS, {"slug": slug})
    return BlogPost(**rows[0]) if rows else None


async def list_public(
    language: Language,
    category: str | None = None,
    search: str | None = None,
    limit: int = 0,
    offset: int = 0,
) -> BlogIndex:
    """Published posts visible in ``language``, newest first.

    Args:
        language: Reader language; posts without a title in it are skipped.
        category: Optional category id filter.
        search: Optional query matched against title and excerpt.
        limit: Maximum number of posts to return (0 = unlimited).
        offset: Number of posts to skip before returning results.
    """
    posts = [
        p for p in await list_posts() if p.published and visible_in(p, language)
    ]
    if category:
        posts = [p for p in posts if p.category_id == category]
    if search:
        posts = [
            p
            for p in posts
            if matches_search(search, p.title(language), p.excerpt(language))
        ]

    total = len(posts)
    if offset > 0:
        posts = posts[offset:]
    if limit > 0:
        posts = posts[:limit]
    return BlogIndex(posts=[to_summary(p, language) for p in posts], total=total)


async def list_admin(
    status: PostStatus = "all",
    category_id: str | None = None,
    author_id: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 15,
) -> AdminBlogIndex:
    """All posts (drafts included) for the admin dashboard, newest first."""
    posts = await list_posts()
    if status == "published":
        posts = [p for p in posts if p.published]
    elif status == "draft":
        posts = [p for p in posts if not p.published]
    if category_id:
        posts = [p for p in posts if p.category_id == category_id]
    if author_id:
        posts = [p for p in posts if p.author_id == author_id]
    if search:
        posts = [p for p in posts if matches_search(search, p.title_en, p.title_ar)]

    total = len(posts)
    start = (page - 1) * page_size
    return AdminBlogIndex(
        posts=posts[start : start + page_size],
        total=total,
        page=page,
        page_size=page_size,
    )


async def generate_unique_slug(base: str, current_id: str | None = None) -> str:
    """Slugify ``base`` and append ``-1``, ``-2``, ... until no other post uses it."""
    root = slugify(base)
    taken = {
        row["slug"]
        for row in await blob_storage.read_collection(BLOG_POSTS)
        if row.get("id") != current_id
    }
    slug = root
    counter = 1
    while slug in taken:
        slug = f"{root}-{counter}"
        counter += 1
    return slug


# -- Categories -------------------------------------------------------------------


async def list_categories() -> list[Category]:
    rows = await blob_storage.select(CATEGORIES, order_by="name_en")
    return [Category(**row) for row in rows]


async def get_category(category_id: str) -> Category | None:
    row = await blob_storage.get_row(CATEGORIES, category_id)
    return Category(**row) if row else None


async def create_category(data: CategoryCreate) -> Category:
    category = Category(id=str(uuid.uuid4()), name_en=data.name_en, name_ar=data.name_ar)
    await blob_storage.insert_row(CATEGORIES, category.model_dump(mode="json"))
    return category


async def delete_category(category_id: str) -> None:
    """Delete a category that no post uses."""
    in_use = await blob_storage.select(BLOG_POSTS, {"category_id": category_id})
    if in_use:
        raise CategoryInUseError(
            f"Cannot delete this category. It is used by {len(in_use)} blog post(s)."
        )
    if not await blob_storage.delete_row(CATEGORIES, category_id):
        raise PostNotFoundError("Category not found")


# -- Writes -----------------------------------------------------------------------


async def _resolve_category(category_id: str) -> Category:
    category = await get_category(category_id)
    if category is None:
        raise PostValidationError("Please select a valid category")
    return category


async def _check_author(author_id: str | None) -> None:
    if author_id and await blob_storage.get_row(AUTHORS, author_id) is None:
        raise PostValidationError("Please select a valid author")


async def _resolve_slug(data: BlogPostInput, current_id: str | None) -> str:
    if data.slug:
        slug = slugify(data.slug)
        if not slug:
            raise PostValidationError("Slug is required")
        return slug
    slug = await generate_unique_slug(data.title_en or data.title_ar or "", current_id)
    if not slug:
        raise PostValidationError("Slug is required")
    return slug


def _build(fields: dict[str, Any]) -> BlogPost:
    try:
        return BlogPost(**fields)
    except ValidationError as e:
        raise PostValidationError(str(e)) from e


async def create_post(
    data: BlogPostInput, created_by: str | None, now: datetime | None = None
) -> BlogPost:
    now = now or datetime.now(timezone.utc)
    category = await _resolve_category(data.category_id)
    await _check_author(data.author_id)
    post = _build(
        {
            **data.model_dump(exclude={"slug", "content_en", "content_ar"}),
            **derive_fields(data, category),
            "id": str(uuid.uuid4()),
            "slug": await _resolve_slug(data, None),
            "published_date": data.published_date or now,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }
    )
    try:
        await blob_storage.insert_row(BLOG_POSTS, post.model_dump(mode="json"))
    except UniqueViolationError as e:
        raise DuplicateSlugError(f"Slug {post.slug!r} is already in use") from e
    logger.info("Created blog post %s (%s)", post.id, post.slug)
    return post


async def update_post(
    post_id: str, data: BlogPostInput, now: datetime | None = None
) -> BlogPost:
    """Replace a post's authored fields and recompute derived ones.

    A replaced featured image is deleted from media storage, best effort.
    """
    existing = await get_post(post_id)
    if existing is None:
        raise PostNotFoundError("Blog post not found")
    category = await _resolve_category(data.category_id)
    await _check_author(data.author_id)
    slug = await _resolve_slug(data, post_id) if data.slug else existing.slug

    post = _build(
        {
            **existing.model_dump(),
            **data.model_dump(exclude={"slug", "content_en", "content_ar"}),
            **derive_fields(data, category),
            "slug": slug,
            "published_date": data.published_date or existing.published_date,
            "updated_at": now or datetime.now(timezone.utc),
        }
    )
    try:
        await blob_storage.update_row(BLOG_POSTS, post_id, post.model_dump(mode="json"))
    except UniqueViolationError as e:
        raise DuplicateSlugError(f"Slug {post.slug!r} is already in use") from e

    old_image = existing.featured_image_url
    if old_image and old_image != post.featured_image_url:
        await delete_media(old_image)
    logger.info("Updated blog post %s", post_id)
    return post


async def delete_post(post_id: str) -> BlogPost:
    """Delete a post; its featured image is removed best effort first."""
    existing = await get_post(post_id)
    if existing is None:
        raise PostNotFoundError("Blog post not found")
    if existing.featured_image_url:
        await delete_media(existing.featured_image_url)
    await blob_storage.delete_row(BLOG_POSTS, post_id)
    logger.info("Deleted blog post %s", post_id)
    return existing
