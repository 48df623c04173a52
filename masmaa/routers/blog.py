"""Blog post endpoints."""

import html
import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import HTMLResponse

from masmaa.config import get_settings
from masmaa.models.blog import (
    SLUG_PATTERN,
    AdminBlogIndex,
    BlogIndex,
    BlogPost,
    BlogPostDetail,
    BlogPostInput,
    Category,
    CategoryCreate,
    Language,
    PreviewRequest,
    PreviewResult,
    SlugRequest,
)
from masmaa.services.blog_helpers import calculate_reading_time
from masmaa.services.blog_posts import (
    BlogPostError,
    CategoryInUseError,
    DuplicateSlugError,
    PostNotFoundError,
    PostStatus,
    PostValidationError,
    create_category,
    create_post,
    delete_category,
    delete_post,
    generate_unique_slug,
    get_post,
    get_post_by_slug,
    list_admin,
    list_categories,
    list_public,
    to_summary,
    update_post,
    visible_in,
)
from masmaa.services.document import parse, render_document, word_count
from masmaa.services.editors_choice import remove_picks_for_post
from masmaa.services.identity import Actor, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog", tags=["blog"])

SITE_NAME = {"en": "Masmaa", "ar": "مسمع"}


def _http_error(exc: BlogPostError) -> HTTPException:
    if isinstance(exc, PostNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (DuplicateSlugError, CategoryInUseError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def _public_post(slug: str, lang: Language) -> BlogPost:
    post = await get_post_by_slug(slug)
    if post is None or not post.published or not visible_in(post, lang):
        raise HTTPException(status_code=404, detail="Blog post not found")
    return post


# -- Public ---------------------------------------------------------------------


@router.get("", response_model=BlogIndex)
async def list_blog_posts(
    lang: Language = Query(default="en"),
    category: str | None = Query(default=None, max_length=100),
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Published posts for readers of one language, newest first."""
    return await list_public(lang, category=category, search=search, limit=limit, offset=offset)


@router.get("/categories", response_model=list[Category])
async def get_categories():
    return await list_categories()


@router.get("/by-slug/{slug}", response_model=BlogPostDetail)
async def get_blog_post_by_slug(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    lang: Language = Query(default="en"),
):
    """Get a published post in one language, including its stored markup."""
    post = await _public_post(slug, lang)
    summary = to_summary(post, lang)
    return BlogPostDetail(
        **summary.model_dump(),
        content=post.content(lang),
        available_languages=[code for code in ("en", "ar") if visible_in(post, code)],
    )


@router.get("/by-slug/{slug}/content")
async def get_blog_post_content(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    lang: Language = Query(default="en"),
):
    """Serve the rendered post body: embeds hydrated, references appended."""
    post = await _public_post(slug, lang)
    rendered = render_document(post.content(lang), is_rtl=lang == "ar")
    return HTMLResponse(content=rendered.html)


@router.get("/by-slug/{slug}/og")
async def get_blog_post_og(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    lang: Language = Query(default="en"),
):
    """Serve a minimal HTML page with OpenGraph meta tags for social sharing.

    Crawlers don't execute JavaScript, so the SPA can't provide per-post OG
    tags. Human visitors are redirected to the SPA page.
    """
    post = await _public_post(slug, lang)

    site_url = get_settings().site_url.rstrip("/")
    canonical = f"{site_url}/{lang}/blog/{slug}"
    title_esc = html.escape(post.title(lang) or "")
    desc_esc = html.escape(post.excerpt(lang) or "")
    site_esc = html.escape(SITE_NAME[lang])
    published = post.published_date.isoformat()
    direction = "rtl" if lang == "ar" else "ltr"

    image_tag = ""
    if post.featured_image_url:
        image_esc = html.escape(post.featured_image_url)
        image_tag = f'<meta property="og:image" content="{image_esc}" />\n'

    page = f"""<!DOCTYPE html>
<html lang="{lang}" dir="{direction}">
<head>
<meta charset="utf-8" />
<title>{title_esc} | {site_esc}</title>
<meta name="description" content="{desc_esc}" />
<meta property="og:type" content="article" />
<meta property="og:title" content="{title_esc}" />
<meta property="og:description" content="{desc_esc}" />
<meta property="og:url" content="{canonical}" />
<meta property="og:site_name" content="{site_esc}" />
<meta property="og:locale" content="{'ar_AR' if lang == 'ar' else 'en_US'}" />
<meta property="article:published_time" content="{published}" />
{image_tag}<meta name="twitter:card" content="{'summary_large_image' if image_tag else 'summary'}" />
<meta name="twitter:title" content="{title_esc}" />
<meta name="twitter:description" content="{desc_esc}" />
<link rel="canonical" href="{canonical}" />
<meta http-equiv="refresh" content="0;url={canonical}" />
</head>
<body>
<p>Redirecting to <a href="{canonical}">{title_esc}</a>...</p>
</body>
</html>"""
    return HTMLResponse(content=page)


# -- Admin ----------------------------------------------------------------------


@router.get("/admin", response_model=AdminBlogIndex)
async def list_blog_posts_admin(
    status: PostStatus = Query(default="all"),
    category_id: str | None = Query(default=None, max_length=100),
    author_id: str | None = Query(default=None, max_length=100),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=15, ge=1, le=100),
    _admin: Actor = Depends(require_admin),
):
    """Every post, drafts included, for the dashboard and the picks browser."""
    return await list_admin(
        status=status,
        category_id=category_id,
        author_id=author_id,
        search=search,
        page=page,
        page_size=page_size,
    )


@router.post("/categories", response_model=Category, status_code=201)
async def add_category(data: CategoryCreate, _admin: Actor = Depends(require_admin)):
    return await create_category(data)


@router.delete("/categories/{category_id}", status_code=204)
async def remove_category(
    category_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=100),
    _admin: Actor = Depends(require_admin),
):
    try:
        await delete_category(category_id)
    except BlogPostError as e:
        raise _http_error(e) from e


@router.post("/slug")
async def make_slug(data: SlugRequest, _admin: Actor = Depends(require_admin)):
    """Generate a slug from a title that no other post uses."""
    slug = await generate_unique_slug(data.title, data.post_id)
    if not slug:
        raise HTTPException(status_code=400, detail="Title produces an empty slug")
    return {"slug": slug}


@router.post("/preview", response_model=PreviewResult)
async def preview_post(data: PreviewRequest, _admin: Actor = Depends(require_admin)):
    """Render unsaved content exactly as the public page will."""
    rendered = render_document(data.content, is_rtl=data.lang == "ar")
    return PreviewResult(
        html=rendered.html,
        word_count=word_count(parse(data.content)),
        reading_time_minutes=calculate_reading_time(data.content),
        footnote_count=len(rendered.footnotes),
        embed_count=rendered.embed_count,
    )


@router.post("", response_model=BlogPost, status_code=201)
async def add_blog_post(data: BlogPostInput, actor: Actor = Depends(require_admin)):
    try:
        return await create_post(data, created_by=actor.id)
    except BlogPostError as e:
        raise _http_error(e) from e


@router.get("/{post_id}", response_model=BlogPost)
async def get_blog_post(
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    _admin: Actor = Depends(require_admin),
):
    """Get a single post with both languages and admin notes."""
    post = await get_post(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return post


@router.put("/{post_id}", response_model=BlogPost)
async def edit_blog_post(
    data: BlogPostInput,
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    _admin: Actor = Depends(require_admin),
):
    try:
        return await update_post(post_id, data)
    except BlogPostError as e:
        raise _http_error(e) from e


@router.delete("/{post_id}")
async def remove_blog_post(
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    _admin: Actor = Depends(require_admin),
):
    """Delete a post along with its featured image and any Editors' Choice picks."""
    try:
        post = await delete_post(post_id)
    except BlogPostError as e:
        raise _http_error(e) from e
    picks_removed = await remove_picks_for_post(post_id)
    return {"status": "deleted", "id": post.id, "picks_removed": picks_removed}
