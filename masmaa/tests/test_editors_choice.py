"""Tests for Editors' Choice scheduling, ordering and slot limits."""

from datetime import datetime, timedelta, timezone

import pytest

from masmaa.models.editors_pick import EditorsPick, PickCreate, PickWindow
from masmaa.services import editors_choice
from masmaa.services.blob_storage import StorageError
from masmaa.services.blog_posts import PostNotFoundError
from masmaa.services.editors_choice import (
    DuplicatePickError,
    PickNotFoundError,
    ReorderFailedError,
    ScheduleValidationError,
    SlotLimitError,
    apply_order,
    compute_active_set,
    default_window,
    pick_status,
    reindex,
    validate_window,
)

T = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def _pick(pick_id, order, start=T - DAY, end=None, post_id=None):
    return EditorsPick(
        id=pick_id,
        blog_post_id=post_id or f"post-{pick_id}",
        display_order=order,
        scheduled_start=start,
        scheduled_end=end,
        created_at=T - 2 * DAY,
    )


def _post_row(post_id, title_en="English", title_ar=None, published=True):
    return {
        "id": post_id,
        "slug": post_id,
        "title_en": title_en,
        "title_ar": title_ar,
        "content_en": "<p>text</p>",
        "category_id": "cat-1",
        "published_date": "2025-03-01T00:00:00Z",
        "published": published,
        "created_at": "2025-03-01T00:00:00Z",
        "updated_at": "2025-03-01T00:00:00Z",
    }


def _seed_picks(store, picks):
    store.seed("editors-picks.json", [p.model_dump(mode="json") for p in picks])


class TestStatus:
    def test_window_bounds(self):
        pick = _pick("a", 0, start=T, end=T + DAY)
        assert pick_status(pick, T - timedelta(seconds=1)) == "scheduled"
        assert pick_status(pick, T) == "active"
        assert pick_status(pick, T + DAY - timedelta(seconds=1)) == "active"
        assert pick_status(pick, T + DAY) == "expired"

    def test_open_end_never_expires(self):
        pick = _pick("a", 0, start=T)
        assert pick_status(pick, T + 3650 * DAY) == "active"

    def test_active_set_excludes_out_of_window_and_sorts(self):
        picks = [
            _pick("late", 2),
            _pick("expired", 0, start=T - 3 * DAY, end=T - DAY),
            _pick("future", 1, start=T + DAY),
            _pick("first", 1),
        ]
        assert [p.id for p in compute_active_set(picks, T)] == ["first", "late"]

    def test_naive_timestamps_read_as_utc(self):
        pick = EditorsPick(
            id="a", blog_post_id="b", display_order=0, scheduled_start="2025-03-10T12:00:00"
        )
        assert pick.scheduled_start == T

    def test_naive_now_read_as_utc(self):
        pick = _pick("a", 0, start=T, end=T + DAY)
        naive = T.replace(tzinfo=None)
        assert pick_status(pick, naive - timedelta(seconds=1)) == "scheduled"
        assert [p.id for p in compute_active_set([pick], naive)] == ["a"]
        assert pick_status(pick, naive + DAY) == "expired"


class TestWindow:
    def test_end_equal_to_start_rejected(self):
        with pytest.raises(ScheduleValidationError, match="End date must be after start date"):
            validate_window(T, T)

    def test_open_end_accepted(self):
        validate_window(T, None)

    def test_default_window(self):
        assert default_window(T) == (T, T + 7 * DAY)
        assert default_window(T, no_end=True) == (T, None)


class TestOrdering:
    def test_reindex_closes_gaps(self):
        picks = [_pick("c", 5), _pick("a", 0), _pick("b", 2)]
        assert [(p.id, p.display_order) for p in reindex(picks)] == [
            ("a", 0),
            ("b", 1),
            ("c", 2),
        ]

    def test_apply_order(self):
        picks = [_pick("a", 0), _pick("b", 1), _pick("c", 2)]
        ordered = apply_order(picks, ["c", "a", "b"])
        assert [(p.id, p.display_order) for p in ordered] == [("c", 0), ("a", 1), ("b", 2)]

    @pytest.mark.parametrize("ids", [["a", "b"], ["a", "b", "b"], ["a", "b", "x"]])
    def test_apply_order_requires_permutation(self, ids):
        picks = [_pick("a", 0), _pick("b", 1), _pick("c", 2)]
        with pytest.raises(ScheduleValidationError):
            apply_order(picks, ids)


class TestAddPick:
    async def test_appends_with_default_window(self, content_store):
        content_store.seed("blog-posts.json", [_post_row("p1"), _post_row("p2")])
        first = await editors_choice.add_pick(PickCreate(blog_post_id="p1"), "admin-1", now=T)
        second = await editors_choice.add_pick(
            PickCreate(blog_post_id="p2", no_end_date=True), "admin-1", now=T
        )

        assert first.display_order == 0
        assert first.scheduled_start == T
        assert first.scheduled_end == T + 7 * DAY
        assert first.selected_by == "admin-1"
        assert second.display_order == 1
        assert second.scheduled_end is None
        assert len(content_store.read("editors-picks.json")) == 2

    async def test_explicit_window(self, content_store):
        content_store.seed("blog-posts.json", [_post_row("p1")])
        pick = await editors_choice.add_pick(
            PickCreate(blog_post_id="p1", scheduled_start=T + DAY, scheduled_end=T + 2 * DAY),
            None,
            now=T,
        )
        assert (pick.scheduled_start, pick.scheduled_end) == (T + DAY, T + 2 * DAY)

    async def test_invalid_window(self, content_store):
        content_store.seed("blog-posts.json", [_post_row("p1")])
        with pytest.raises(ScheduleValidationError):
            await editors_choice.add_pick(
                PickCreate(blog_post_id="p1", scheduled_start=T, scheduled_end=T), None, now=T
            )
        assert "editors-picks.json" not in content_store.blobs

    async def test_duplicate_post(self, content_store):
        content_store.seed("blog-posts.json", [_post_row("p1")])
        await editors_choice.add_pick(PickCreate(blog_post_id="p1"), None, now=T)
        with pytest.raises(DuplicatePickError, match="already in Editors' Choice"):
            await editors_choice.add_pick(PickCreate(blog_post_id="p1"), None, now=T)

    async def test_unknown_post(self, content_store):
        with pytest.raises(PostNotFoundError):
            await editors_choice.add_pick(PickCreate(blog_post_id="ghost"), None, now=T)

    async def test_slot_limit(self, content_store):
        content_store.seed("editors-choice-settings.json", {"max_slots": 2})
        content_store.seed("blog-posts.json", [_post_row(f"p{i}") for i in range(3)])
        await editors_choice.add_pick(PickCreate(blog_post_id="p0"), None, now=T)
        await editors_choice.add_pick(PickCreate(blog_post_id="p1"), None, now=T)
        before = await editors_choice.list_picks()

        with pytest.raises(SlotLimitError, match="Maximum 2 articles"):
            await editors_choice.add_pick(PickCreate(blog_post_id="p2"), None, now=T)

        assert await editors_choice.list_picks() == before
        assert [p.blog_post_id for p in before] == ["p0", "p1"]


class TestSettings:
    async def test_default_from_config(self, content_store):
        assert (await editors_choice.get_choice_settings()).max_slots == 6

    async def test_out_of_range(self, content_store):
        with pytest.raises(ScheduleValidationError, match="between 2 and 6"):
            await editors_choice.set_max_slots(7)

    async def test_lowering_keeps_existing_picks(self, content_store):
        _seed_picks(content_store, [_pick(str(i), i) for i in range(4)])
        await editors_choice.set_max_slots(2)

        state = await editors_choice.get_state(now=T)
        assert state.count == 4
        assert state.max_slots == 2
        assert state.can_add is False
        assert len(content_store.read("editors-picks.json")) == 4


class TestReorder:
    async def test_reorder_writes_dense_ranks(self, content_store):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1), _pick("c", 2)])
        result = await editors_choice.reorder(["b", "c", "a"])

        assert [p.id for p in result] == ["b", "c", "a"]
        stored = {r["id"]: r["display_order"] for r in content_store.read("editors-picks.json")}
        assert stored == {"b": 0, "c": 1, "a": 2}
        assert content_store.uploads == ["editors-picks.json"]

    async def test_failed_write_returns_stored_order(self, content_store):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1)])
        content_store.fail_writes = True

        with pytest.raises(ReorderFailedError) as exc:
            await editors_choice.reorder(["b", "a"])
        assert [p.id for p in exc.value.picks] == ["a", "b"]

    async def test_failed_reload_falls_back_to_loaded_order(self, content_store, mocker):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1)])
        mocker.patch.object(
            editors_choice, "_write_picks", side_effect=StorageError("write failed")
        )
        original = editors_choice.list_picks
        calls = []

        async def flaky_list():
            calls.append(1)
            if len(calls) > 1:
                raise StorageError("read failed")
            return await original()

        mocker.patch.object(editors_choice, "list_picks", side_effect=flaky_list)
        with pytest.raises(ReorderFailedError) as exc:
            await editors_choice.reorder(["b", "a"])
        assert [p.id for p in exc.value.picks] == ["a", "b"]

    async def test_move_pick(self, content_store):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1), _pick("c", 2)])
        result = await editors_choice.move_pick("a", 5)
        assert [(p.id, p.display_order) for p in result] == [("b", 0), ("c", 1), ("a", 2)]

    async def test_move_unknown(self, content_store):
        with pytest.raises(PickNotFoundError):
            await editors_choice.move_pick("x", 0)


class TestRemoveAndWindow:
    async def test_remove_reindexes(self, content_store):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1), _pick("c", 2)])
        remaining = await editors_choice.remove_pick("b")
        assert [(p.id, p.display_order) for p in remaining] == [("a", 0), ("c", 1)]

    async def test_remove_missing(self, content_store):
        with pytest.raises(PickNotFoundError):
            await editors_choice.remove_pick("x")

    async def test_remove_for_post(self, content_store):
        _seed_picks(
            content_store, [_pick("a", 0), _pick("b", 1, post_id="gone"), _pick("c", 2)]
        )
        assert await editors_choice.remove_picks_for_post("gone") == 1
        assert await editors_choice.remove_picks_for_post("gone") == 0
        orders = [r["display_order"] for r in content_store.read("editors-picks.json")]
        assert orders == [0, 1]

    async def test_update_window_keeps_rank(self, content_store):
        _seed_picks(content_store, [_pick("a", 0), _pick("b", 1)])
        pick = await editors_choice.update_window(
            "b", PickWindow(scheduled_start=T + DAY, scheduled_end=None)
        )
        assert pick.display_order == 1
        assert pick.scheduled_start == T + DAY
        assert pick.scheduled_end is None

    async def test_update_window_rejects_inverted(self, content_store):
        _seed_picks(content_store, [_pick("a", 0)])
        with pytest.raises(ScheduleValidationError):
            await editors_choice.update_window(
                "a", PickWindow(scheduled_start=T, scheduled_end=T - DAY)
            )

    async def test_update_window_missing(self, content_store):
        with pytest.raises(PickNotFoundError):
            await editors_choice.update_window("x", PickWindow(scheduled_start=T))


class TestHomeFeed:
    async def test_only_active_visible_published(self, content_store):
        content_store.seed(
            "blog-posts.json",
            [
                _post_row("en-only"),
                _post_row("both", title_ar="عنوان"),
                _post_row("draft", published=False),
                _post_row("future"),
            ],
        )
        _seed_picks(
            content_store,
            [
                _pick("p1", 1, post_id="en-only"),
                _pick("p2", 0, post_id="both"),
                _pick("p3", 2, post_id="draft"),
                _pick("p4", 3, post_id="future", start=T + DAY),
                _pick("p5", 4, post_id="deleted"),
            ],
        )

        en = await editors_choice.home_feed("en", now=T)
        assert [p.id for p in en.posts] == ["both", "en-only"]

        ar = await editors_choice.home_feed("ar", now=T)
        assert [p.id for p in ar.posts] == ["both"]
        assert ar.posts[0].title == "عنوان"

    async def test_state_reports_status_and_titles(self, content_store):
        content_store.seed("blog-posts.json", [_post_row("both", title_ar="عنوان")])
        _seed_picks(
            content_store,
            [
                _pick("p1", 0, post_id="both"),
                _pick("p2", 1, start=T + DAY),
                _pick("p3", 2, start=T - 3 * DAY, end=T - DAY),
            ],
        )
        state = await editors_choice.get_state(now=T)
        assert [v.status for v in state.picks] == ["active", "scheduled", "expired"]
        assert state.picks[0].post_title_ar == "عنوان"
        assert state.picks[1].post_title_en is None
        assert state.can_add is True
