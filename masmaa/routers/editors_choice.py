"""Editors' Choice endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import JSONResponse

from masmaa.models.blog import Language
from masmaa.models.editors_pick import (
    EditorsChoiceFeed,
    EditorsChoiceSettings,
    EditorsChoiceState,
    EditorsPick,
    PickCreate,
    PickMove,
    PickOrder,
    PickWindow,
)
from masmaa.services.blog_posts import PostNotFoundError
from masmaa.services.editors_choice import (
    DuplicatePickError,
    EditorsChoiceError,
    PickNotFoundError,
    ReorderFailedError,
    SlotLimitError,
    add_pick,
    get_choice_settings,
    get_state,
    home_feed,
    move_pick,
    remove_pick,
    reorder,
    set_max_slots,
    update_window,
)
from masmaa.services.identity import Actor, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/editors-choice", tags=["editors-choice"])


def _http_error(exc: EditorsChoiceError) -> HTTPException:
    if isinstance(exc, PickNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (SlotLimitError, DuplicatePickError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _reorder_failed(exc: ReorderFailedError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "picks": [p.model_dump(mode="json") for p in exc.picks],
        },
    )


@router.get("", response_model=EditorsChoiceFeed)
async def get_home_feed(lang: Language = Query(default="en")):
    """Currently active picks for the home page, in editor order."""
    return await home_feed(lang)


@router.get("/picks", response_model=EditorsChoiceState)
async def get_picks(_admin: Actor = Depends(require_admin)):
    return await get_state()


@router.post("/picks", response_model=EditorsPick, status_code=201)
async def create_pick(data: PickCreate, actor: Actor = Depends(require_admin)):
    try:
        return await add_pick(data, selected_by=actor.id)
    except PostNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except EditorsChoiceError as e:
        raise _http_error(e) from e


@router.put("/picks/order", response_model=list[EditorsPick])
async def reorder_picks(data: PickOrder, _admin: Actor = Depends(require_admin)):
    """Save a full new order. On failure the body carries the stored order."""
    try:
        return await reorder(data.pick_ids)
    except ReorderFailedError as e:
        return _reorder_failed(e)
    except EditorsChoiceError as e:
        raise _http_error(e) from e


@router.put("/picks/{pick_id}/move", response_model=list[EditorsPick])
async def move_one_pick(
    data: PickMove,
    pick_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=100),
    _admin: Actor = Depends(require_admin),
):
    try:
        return await move_pick(pick_id, data.to_index)
    except ReorderFailedError as e:
        return _reorder_failed(e)
    except EditorsChoiceError as e:
        raise _http_error(e) from e


@router.put("/picks/{pick_id}/window", response_model=EditorsPick)
async def edit_pick_window(
    data: PickWindow,
    pick_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=100),
    _admin: Actor = Depends(require_admin),
):
    try:
        return await update_window(pick_id, data)
    except EditorsChoiceError as e:
        raise _http_error(e) from e


@router.delete("/picks/{pick_id}", response_model=list[EditorsPick])
async def delete_pick(
    pick_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=100),
    _admin: Actor = Depends(require_admin),
):
    """Remove a pick; the remaining picks are re-ranked without gaps."""
    try:
        return await remove_pick(pick_id)
    except EditorsChoiceError as e:
        raise _http_error(e) from e


@router.get("/settings", response_model=EditorsChoiceSettings)
async def read_settings(_admin: Actor = Depends(require_admin)):
    return await get_choice_settings()


@router.put("/settings", response_model=EditorsChoiceSettings)
async def write_settings(
    data: EditorsChoiceSettings, _admin: Actor = Depends(require_admin)
):
    """Change the slot limit. Existing picks above the new limit are kept."""
    try:
        return await set_max_slots(data.max_slots)
    except EditorsChoiceError as e:
        raise _http_error(e) from e
