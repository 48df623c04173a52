"""Editors' Choice: scheduled, manually ordered picks for the home page.

The pure functions at the top decide visibility and ordering; they take
``now`` explicitly and never read the clock. The async functions below load
and persist picks through the content store.

A pick is *active* while ``scheduled_start <= now < scheduled_end`` (an open
end never expires). ``display_order`` is a dense 0-based rank; every write
that adds, removes or reorders picks leaves it as ``0..k-1``.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from masmaa.config import get_settings
from masmaa.models.blog import Language
from masmaa.models.editors_pick import (
    EditorsChoiceFeed,
    EditorsChoiceSettings,
    EditorsChoiceState,
    EditorsPick,
    PickCreate,
    PickStatus,
    PickView,
    PickWindow,
    as_utc,
)
from masmaa.services import blob_storage, blog_posts
from masmaa.services.blob_storage import (
    EDITORS_PICKS,
    SETTINGS_BLOB,
    StorageError,
    UniqueViolationError,
)

logger = logging.getLogger(__name__)


class EditorsChoiceError(Exception):
    """Base error for Editors' Choice operations."""


class ScheduleValidationError(EditorsChoiceError):
    pass


class SlotLimitError(EditorsChoiceError):
    def __init__(self, max_slots: int):
        super().__init__(f"Maximum {max_slots} articles can be selected")
        self.max_slots = max_slots


class DuplicatePickError(EditorsChoiceError):
    def __init__(self) -> None:
        super().__init__("This article is already in Editors' Choice")


class PickNotFoundError(EditorsChoiceError):
    pass


class ReorderFailedError(EditorsChoiceError):
    """The new order was not saved; ``picks`` is the order actually stored."""

    def __init__(self, picks: list[EditorsPick]):
        super().__init__("Failed to update order")
        self.picks = picks


# -- Pure functions -------------------------------------------------------------


def pick_status(pick: EditorsPick, now: datetime) -> PickStatus:
    now = as_utc(now)
    if pick.scheduled_end is not None and pick.scheduled_end <= now:
        return "expired"
    if pick.scheduled_start > now:
        return "scheduled"
    return "active"


def compute_active_set(picks: list[EditorsPick], now: datetime) -> list[EditorsPick]:
    """Picks whose window contains ``now``, by ascending display order."""
    active = [p for p in picks if pick_status(p, now) == "active"]
    return sorted(active, key=lambda p: p.display_order)


def validate_window(start: datetime, end: datetime | None) -> None:
    start, end = as_utc(start), as_utc(end)
    if end is not None and end <= start:
        raise ScheduleValidationError("End date must be after start date")


def default_window(
    now: datetime, days: int = 7, no_end: bool = False
) -> tuple[datetime, datetime | None]:
    return now, None if no_end else now + timedelta(days=days)


def reindex(picks: list[EditorsPick]) -> list[EditorsPick]:
    """Copies of ``picks`` in their current order, ranked ``0..k-1``."""
    ordered = sorted(picks, key=lambda p: p.display_order)
    return [p.model_copy(update={"display_order": i}) for i, p in enumerate(ordered)]


def apply_order(picks: list[EditorsPick], pick_ids: list[str]) -> list[EditorsPick]:
    """Rank picks by their position in ``pick_ids``, a permutation of their ids."""
    by_id = {p.id: p for p in picks}
    if len(pick_ids) != len(by_id) or set(pick_ids) != set(by_id):
        raise ScheduleValidationError("Order must list every current pick exactly once")
    return [
        by_id[pick_id].model_copy(update={"display_order": i})
        for i, pick_id in enumerate(pick_ids)
    ]


# -- Settings -------------------------------------------------------------------


async def get_choice_settings() -> EditorsChoiceSettings:
    data = await blob_storage.read_document(SETTINGS_BLOB)
    if data is None:
        return EditorsChoiceSettings(max_slots=get_settings().editors_choice_max_slots)
    return EditorsChoiceSettings(**data)


async def set_max_slots(max_slots: int) -> EditorsChoiceSettings:
    """Change the slot limit. Lowering it never removes existing picks."""
    try:
        settings = EditorsChoiceSettings(max_slots=max_slots)
    except ValueError as e:
        raise ScheduleValidationError("Max slots must be between 2 and 6") from e
    await blob_storage.write_document(SETTINGS_BLOB, settings.model_dump())
    logger.info("Editors' Choice max slots set to %d", max_slots)
    return settings


# -- Picks ----------------------------------------------------------------------


async def list_picks() -> list[EditorsPick]:
    rows = await blob_storage.read_collection(EDITORS_PICKS)
    return sorted((EditorsPick(**row) for row in rows), key=lambda p: p.display_order)


async def _write_picks(picks: list[EditorsPick]) -> None:
    await blob_storage.write_all(
        EDITORS_PICKS, [p.model_dump(mode="json") for p in picks]
    )


async def get_state(now: datetime | None = None) -> EditorsChoiceState:
    """Admin view: every pick with its status, plus slot usage."""
    now = now or datetime.now(timezone.utc)
    picks = await list_picks()
    settings = await get_choice_settings()
    posts = {p.id: p for p in await blog_posts.list_posts()}

    views = []
    for pick in picks:
        post = posts.get(pick.blog_post_id)
        views.append(
            PickView(
                pick=pick,
                status=pick_status(pick, now),
                post_title_en=post.title_en if post else None,
                post_title_ar=post.title_ar if post else None,
            )
        )
    return EditorsChoiceState(
        picks=views,
        max_slots=settings.max_slots,
        count=len(picks),
        can_add=len(picks) < settings.max_slots,
    )


async def add_pick(
    data: PickCreate, selected_by: str | None, now: datetime | None = None
) -> EditorsPick:
    """Append a post at the end of the order.

    Raises:
        SlotLimitError: the list already holds ``max_slots`` picks.
        DuplicatePickError: the post is already picked.
        ScheduleValidationError: the window ends before it starts.
    """
    now = now or datetime.now(timezone.utc)
    picks = await list_picks()
    settings = await get_choice_settings()
    if len(picks) >= settings.max_slots:
        raise SlotLimitError(settings.max_slots)

    if await blog_posts.get_post(data.blog_post_id) is None:
        raise blog_posts.PostNotFoundError("Blog post not found")

    start, end = default_window(
        data.scheduled_start or now,
        days=get_settings().editors_choice_window_days,
        no_end=data.no_end_date,
    )
    if data.scheduled_end is not None and not data.no_end_date:
        end = data.scheduled_end
    validate_window(start, end)

    pick = EditorsPick(
        id=str(uuid.uuid4()),
        blog_post_id=data.blog_post_id,
        display_order=len(picks),
        scheduled_start=start,
        scheduled_end=end,
        selected_by=selected_by,
        created_at=now,
    )
    try:
        await blob_storage.insert_row(EDITORS_PICKS, pick.model_dump(mode="json"))
    except UniqueViolationError as e:
        raise DuplicatePickError() from e
    logger.info("Added pick %s for post %s at %d", pick.id, pick.blog_post_id, pick.display_order)
    return pick


async def reorder(pick_ids: list[str]) -> list[EditorsPick]:
    """Rewrite every pick's rank to match ``pick_ids`` in one store write.

    If the write fails the stored order is reloaded and returned on the
    raised ``ReorderFailedError`` so callers can discard an optimistic order.
    """
    picks = await list_picks()
    reordered = apply_order(picks, pick_ids)
    try:
        await _write_picks(reordered)
    except StorageError as e:
        logger.warning("Reorder failed, reloading stored order: %s", e)
        try:
            stored = await list_picks()
        except StorageError:
            logger.error("Could not reload picks after failed reorder", exc_info=True)
            stored = picks
        raise ReorderFailedError(stored) from e
    return reordered


async def move_pick(pick_id: str, to_index: int) -> list[EditorsPick]:
    """Drag-and-drop: move one pick to ``to_index`` and save the new order."""
    ids = [p.id for p in await list_picks()]
    if pick_id not in ids:
        raise PickNotFoundError("Pick not found")
    ids.remove(pick_id)
    ids.insert(min(to_index, len(ids)), pick_id)
    return await reorder(ids)


async def update_window(pick_id: str, window: PickWindow) -> EditorsPick:
    """Change a pick's schedule; its rank is untouched."""
    validate_window(window.scheduled_start, window.scheduled_end)
    row = await blob_storage.update_row(
        EDITORS_PICKS, pick_id, window.model_dump(mode="json")
    )
    if row is None:
        raise PickNotFoundError("Pick not found")
    return EditorsPick(**row)


async def remove_pick(pick_id: str) -> list[EditorsPick]:
    """Delete a pick and close the gap it leaves in the order."""
    picks = await list_picks()
    remaining = [p for p in picks if p.id != pick_id]
    if len(remaining) == len(picks):
        raise PickNotFoundError("Pick not found")
    remaining = reindex(remaining)
    await _write_picks(remaining)
    logger.info("Removed pick %s", pick_id)
    return remaining


async def remove_picks_for_post(post_id: str) -> int:
    """Drop every pick of a deleted post. Returns the number removed."""
    picks = await list_picks()
    remaining = [p for p in picks if p.blog_post_id != post_id]
    removed = len(picks) - len(remaining)
    if removed:
        await _write_picks(reindex(remaining))
    return removed


async def home_feed(language: Language, now: datetime | None = None) -> EditorsChoiceFeed:
    """Active picks whose posts are published and visible in ``language``."""
    now = now or datetime.now(timezone.utc)
    active = compute_active_set(await list_picks(), now)
    posts = {p.id: p for p in await blog_posts.list_posts()}

    summaries = []
    for pick in active:
        post = posts.get(pick.blog_post_id)
        if post is None or not post.published or not blog_posts.visible_in(post, language):
            continue
        summaries.append(blog_posts.to_summary(post, language))
    return EditorsChoiceFeed(posts=summaries, total=len(summaries))
