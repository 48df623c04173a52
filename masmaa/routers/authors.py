"""Author endpoints: public profile page and admin management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from masmaa.models.author import Author, AuthorInput, AuthorProfile
from masmaa.models.blog import SLUG_PATTERN, Language
from masmaa.services.authors import (
    AuthorError,
    AuthorNotFoundError,
    DuplicateAuthorSlugError,
    author_profile,
    create_author,
    delete_author,
    get_author,
    list_authors,
    update_author,
)
from masmaa.services.identity import Actor, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authors", tags=["authors"])

ID_PATTERN = r"^[a-zA-Z0-9_-]+$"


def _http_error(exc: AuthorError) -> HTTPException:
    if isinstance(exc, AuthorNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DuplicateAuthorSlugError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@router.get("/by-slug/{slug}", response_model=AuthorProfile)
async def get_author_profile(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    lang: Language = Query(default="en"),
):
    """Author page for readers of one language."""
    try:
        return await author_profile(slug, lang)
    except AuthorError as e:
        raise _http_error(e) from e


@router.get("", response_model=list[Author])
async def get_authors(_admin: Actor = Depends(require_admin)):
    return await list_authors()


@router.post("", response_model=Author, status_code=201)
async def add_author(data: AuthorInput, _admin: Actor = Depends(require_admin)):
    try:
        return await create_author(data)
    except AuthorError as e:
        raise _http_error(e) from e


@router.get("/{author_id}", response_model=Author)
async def get_single_author(
    author_id: str = Path(..., pattern=ID_PATTERN, max_length=100),
    _admin: Actor = Depends(require_admin),
):
    author = await get_author(author_id)
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return author


@router.put("/{author_id}", response_model=Author)
async def edit_author(
    data: AuthorInput,
    author_id: str = Path(..., pattern=ID_PATTERN, max_length=100),
    _admin: Actor = Depends(require_admin),
):
    try:
        return await update_author(author_id, data)
    except AuthorError as e:
        raise _http_error(e) from e


@router.delete("/{author_id}")
async def remove_author(
    author_id: str = Path(..., pattern=ID_PATTERN, max_length=100),
    _admin: Actor = Depends(require_admin),
):
    """Delete an author; their posts remain and show no author."""
    try:
        posts_detached = await delete_author(author_id)
    except AuthorError as e:
        raise _http_error(e) from e
    return {"status": "deleted", "id": author_id, "posts_detached": posts_detached}
