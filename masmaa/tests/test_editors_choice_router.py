"""Tests for the Editors' Choice router."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from masmaa.models.editors_pick import EditorsPick
from masmaa.services.editors_choice import ReorderFailedError

NOW = datetime.now(timezone.utc)


def _post_row(post_id, title_ar=None):
    return {
        "id": post_id,
        "slug": post_id,
        "title_en": f"Post {post_id}",
        "title_ar": title_ar,
        "content_en": "<p>text</p>",
        "category_id": "cat-1",
        "published_date": "2025-01-01T00:00:00Z",
        "published": True,
        "created_at": "2025-01-01T00:00:00Z",
        "updated_at": "2025-01-01T00:00:00Z",
    }


def _pick_row(pick_id, post_id, order, start=None, end=None):
    return {
        "id": pick_id,
        "blog_post_id": post_id,
        "display_order": order,
        "scheduled_start": (start or NOW - timedelta(days=1)).isoformat(),
        "scheduled_end": end.isoformat() if end else None,
    }


@pytest.fixture
def seeded(content_store):
    content_store.seed(
        "blog-posts.json",
        [_post_row("alpha", title_ar="ألفا"), _post_row("beta"), _post_row("gamma")],
    )
    content_store.seed(
        "editors-picks.json",
        [
            _pick_row("pick-a", "alpha", 0),
            _pick_row("pick-b", "beta", 1),
            _pick_row("pick-c", "gamma", 2, start=NOW + timedelta(days=2)),
        ],
    )
    return content_store


class TestPublicFeed:
    async def test_active_picks_in_order(self, client, seeded):
        resp = await client.get("/api/masmaa/editors-choice")
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()["posts"]] == ["alpha", "beta"]

    async def test_language_filter(self, client, seeded):
        resp = await client.get("/api/masmaa/editors-choice", params={"lang": "ar"})
        posts = resp.json()["posts"]
        assert [p["title"] for p in posts] == ["ألفا"]


class TestAdminPicks:
    async def test_requires_admin(self, client, seeded, user_headers):
        resp = await client.get("/api/masmaa/editors-choice/picks", headers=user_headers)
        assert resp.status_code == 403

    async def test_state(self, client, seeded, admin_headers):
        resp = await client.get("/api/masmaa/editors-choice/picks", headers=admin_headers)
        data = resp.json()
        assert data["count"] == 3
        assert data["can_add"] is True
        assert [v["status"] for v in data["picks"]] == ["active", "active", "scheduled"]

    async def test_add_pick(self, client, content_store, admin_headers):
        content_store.seed("blog-posts.json", [_post_row("alpha")])
        resp = await client.post(
            "/api/masmaa/editors-choice/picks",
            json={"blog_post_id": "alpha"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["display_order"] == 0
        assert data["selected_by"] == "admin-1"
        assert data["scheduled_end"] is not None

    async def test_add_duplicate_is_409(self, client, seeded, admin_headers):
        resp = await client.post(
            "/api/masmaa/editors-choice/picks",
            json={"blog_post_id": "alpha"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "This article is already in Editors' Choice"

    async def test_add_over_limit_is_409(self, client, seeded, admin_headers):
        seeded.seed("editors-choice-settings.json", {"max_slots": 3})
        seeded.seed(
            "blog-posts.json",
            [_post_row("alpha"), _post_row("beta"), _post_row("gamma"), _post_row("delta")],
        )
        resp = await client.post(
            "/api/masmaa/editors-choice/picks",
            json={"blog_post_id": "delta"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Maximum 3 articles can be selected"

    async def test_add_unknown_post_is_404(self, client, content_store, admin_headers):
        resp = await client.post(
            "/api/masmaa/editors-choice/picks",
            json={"blog_post_id": "ghost"},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_add_bad_window_is_400(self, client, content_store, admin_headers):
        content_store.seed("blog-posts.json", [_post_row("alpha")])
        start = NOW.isoformat()
        resp = await client.post(
            "/api/masmaa/editors-choice/picks",
            json={"blog_post_id": "alpha", "scheduled_start": start, "scheduled_end": start},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "End date must be after start date"


class TestOrdering:
    async def test_reorder(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/order",
            json={"pick_ids": ["pick-c", "pick-a", "pick-b"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert [(p["id"], p["display_order"]) for p in resp.json()] == [
            ("pick-c", 0),
            ("pick-a", 1),
            ("pick-b", 2),
        ]

    async def test_reorder_not_a_permutation(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/order",
            json={"pick_ids": ["pick-a"]},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_reorder_failure_returns_stored_order(
        self, client, seeded, admin_headers, mocker
    ):
        stored = [
            EditorsPick(
                id="pick-a", blog_post_id="alpha", display_order=0, scheduled_start=NOW
            )
        ]
        mocker.patch(
            "masmaa.routers.editors_choice.reorder",
            new_callable=AsyncMock,
            side_effect=ReorderFailedError(stored),
        )
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/order",
            json={"pick_ids": ["pick-a"]},
            headers=admin_headers,
        )
        assert resp.status_code == 502
        body = resp.json()
        assert body["detail"] == "Failed to update order"
        assert [p["id"] for p in body["picks"]] == ["pick-a"]

    async def test_move(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/pick-a/move",
            json={"to_index": 2},
            headers=admin_headers,
        )
        assert [p["id"] for p in resp.json()] == ["pick-b", "pick-c", "pick-a"]

    async def test_move_negative_index(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/pick-a/move",
            json={"to_index": -1},
            headers=admin_headers,
        )
        assert resp.status_code == 422


class TestWindowsAndRemoval:
    async def test_update_window(self, client, seeded, admin_headers):
        start = (NOW + timedelta(days=1)).isoformat()
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/pick-b/window",
            json={"scheduled_start": start, "scheduled_end": None},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["scheduled_end"] is None
        assert resp.json()["display_order"] == 1

    async def test_update_missing_window(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/picks/nope/window",
            json={"scheduled_start": NOW.isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_remove(self, client, seeded, admin_headers):
        resp = await client.delete(
            "/api/masmaa/editors-choice/picks/pick-a", headers=admin_headers
        )
        assert [(p["id"], p["display_order"]) for p in resp.json()] == [
            ("pick-b", 0),
            ("pick-c", 1),
        ]


class TestSettings:
    async def test_read_default(self, client, content_store, admin_headers):
        resp = await client.get("/api/masmaa/editors-choice/settings", headers=admin_headers)
        assert resp.json() == {"max_slots": 6}

    async def test_lower_limit_keeps_picks(self, client, seeded, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/settings",
            json={"max_slots": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        state = (
            await client.get("/api/masmaa/editors-choice/picks", headers=admin_headers)
        ).json()
        assert state["count"] == 3
        assert state["can_add"] is False

    async def test_out_of_range_rejected(self, client, content_store, admin_headers):
        resp = await client.put(
            "/api/masmaa/editors-choice/settings",
            json={"max_slots": 9},
            headers=admin_headers,
        )
        assert resp.status_code == 422
