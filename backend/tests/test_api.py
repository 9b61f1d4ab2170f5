"""
NoteNest Backend — API Endpoint Tests
======================================

What:  End-to-end tests of the HTTP and WebSocket surface.
How:   test_client talks to the real app through ASGITransport; the database
       session dependency points at an in-memory SQLite engine. Live sidebar
       tests run on a SQLite file (file_sessions) so every session has its
       own connection.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from notenest.middleware.rate_limit import RateLimitMiddleware

ALICE = {"X-User-Id": "user_alice"}
BOB = {"X-User-Id": "user_bob"}
MALLORY = {"X-User-Id": "user_mallory"}


async def _create(client, headers=ALICE, **body):
    response = await client.post("/api/documents", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ── Health & Marketing ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(test_client):
    response = await test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "connected"
    assert body["status"] in ("healthy", "degraded")


@pytest.mark.asyncio
async def test_heroes(test_client):
    response = await test_client.get("/api/marketing/heroes")

    assert response.status_code == 200
    images = response.json()["images"]
    assert [(i["src"], i["dark_src"]) for i in images] == [
        ("/file.svg", "/filedark.svg"),
        ("/airplane.svg", "/airplane-dark.svg"),
    ]
    assert images[1]["hide_on_mobile"] is True


# ── Documents ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_requires_identity(test_client):
    response = await test_client.post("/api/documents", json={})

    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"


@pytest.mark.asyncio
async def test_create_and_get(test_client):
    created = await _create(test_client)

    response = await test_client.get(f"/api/documents/{created['id']}", headers=ALICE)

    assert response.status_code == 200
    assert response.json()["title"] == "Untitled"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_other_user_cannot_read_private_document(test_client):
    created = await _create(test_client)

    response = await test_client.get(f"/api/documents/{created['id']}", headers=BOB)

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_published_document_readable_anonymously(test_client):
    created = await _create(test_client, title="Public")
    await test_client.patch(
        f"/api/documents/{created['id']}", json={"is_published": True}, headers=ALICE
    )

    response = await test_client.get(f"/api/documents/{created['id']}")

    assert response.status_code == 200
    assert response.json()["title"] == "Public"


@pytest.mark.asyncio
async def test_missing_document(test_client):
    response = await test_client.get(
        "/api/documents/00000000-0000-4000-8000-000000000000", headers=ALICE
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_sidebar_children(test_client):
    parent = await _create(test_client, title="Parent")
    await _create(test_client, title="Child", parent_document=parent["id"])

    roots = await test_client.get("/api/documents/sidebar", headers=ALICE)
    children = await test_client.get(
        "/api/documents/sidebar", params={"parent_document": parent["id"]}, headers=ALICE
    )

    assert [d["title"] for d in roots.json()] == ["Parent"]
    assert [d["title"] for d in children.json()] == ["Child"]


@pytest.mark.asyncio
async def test_sidebar_tree(test_client):
    parent = await _create(test_client, title="Parent")
    child = await _create(test_client, title="Child", parent_document=parent["id"])

    response = await test_client.get(
        "/api/sidebar",
        params=[("expanded", parent["id"]), ("expanded", child["id"]), ("active", child["id"])],
        headers=ALICE,
    )

    assert response.status_code == 200
    (row,) = response.json()["documents"]
    assert row["expanded"] is True
    (child_row,) = row["children"]
    assert child_row["level"] == 1
    assert child_row["active"] is True
    assert child_row["href"] == f"/documents/{child['id']}"
    assert child_row["empty"] == {"label": "No pages inside", "padding_left": 49}


@pytest.mark.asyncio
async def test_update_rejects_invalid_content(test_client):
    created = await _create(test_client)

    response = await test_client.patch(
        f"/api/documents/{created['id']}", json={"content": "{not json"}, headers=ALICE
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_save_content(test_client):
    created = await _create(test_client)

    response = await test_client.put(
        f"/api/documents/{created['id']}/content",
        json={"content": '[{"type": "paragraph", "content": "hello"}]'},
        headers=ALICE,
    )

    assert response.status_code == 200
    assert response.json()["content"] == (
        '[\n  {\n    "type": "paragraph",\n    "content": "hello"\n  }\n]'
    )


@pytest.mark.asyncio
async def test_save_invalid_content(test_client):
    created = await _create(test_client)

    response = await test_client.put(
        f"/api/documents/{created['id']}/content",
        json={"content": '[{"content": "no type"}]'},
        headers=ALICE,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["title", "is_published"])
async def test_update_rejects_null_for_required_field(test_client, field):
    created = await _create(test_client, title="Keep me")

    response = await test_client.patch(
        f"/api/documents/{created['id']}", json={field: None}, headers=ALICE
    )

    assert response.status_code == 422
    current = await test_client.get(f"/api/documents/{created['id']}", headers=ALICE)
    assert current.json()["title"] == "Keep me"
    assert current.json()["is_published"] is False


@pytest.mark.asyncio
async def test_other_user_cannot_save_published_content(test_client):
    created = await _create(test_client)
    await test_client.patch(
        f"/api/documents/{created['id']}", json={"is_published": True}, headers=ALICE
    )

    response = await test_client.put(
        f"/api/documents/{created['id']}/content",
        json={"content": '[{"type": "paragraph", "content": "defaced"}]'},
        headers=BOB,
    )

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"
    current = await test_client.get(f"/api/documents/{created['id']}", headers=ALICE)
    assert current.json()["content"] is None


@pytest.mark.asyncio
async def test_remove_icon(test_client):
    created = await _create(test_client)
    await test_client.patch(f"/api/documents/{created['id']}", json={"icon": "🌱"}, headers=ALICE)

    response = await test_client.delete(f"/api/documents/{created['id']}/icon", headers=ALICE)

    assert response.status_code == 200
    assert response.json()["icon"] is None


# ── Trash Banner ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_banner_only_for_archived_documents(test_client):
    created = await _create(test_client)
    url = f"/api/documents/{created['id']}/banner"

    assert (await test_client.get(url, headers=ALICE)).json() is None

    await test_client.post(f"/api/documents/{created['id']}/archive", headers=ALICE)
    banner = (await test_client.get(url, headers=ALICE)).json()

    assert banner["message"] == "This page is in the Trash."
    assert [a["label"] for a in banner["actions"]] == ["Restore page", "Delete forever"]


@pytest.mark.asyncio
async def test_restore_from_trash(test_client):
    created = await _create(test_client)
    await test_client.post(f"/api/documents/{created['id']}/archive", headers=ALICE)

    response = await test_client.post(f"/api/documents/{created['id']}/restore", headers=ALICE)

    assert response.status_code == 200
    assert response.json() == {
        "notice": {"status": "success", "message": "Note restored!"},
        "redirect": None,
    }
    trash = await test_client.get("/api/documents/trash", headers=ALICE)
    assert trash.json() == []


@pytest.mark.asyncio
async def test_delete_forever(test_client):
    created = await _create(test_client)
    await test_client.post(f"/api/documents/{created['id']}/archive", headers=ALICE)

    response = await test_client.delete(f"/api/documents/{created['id']}", headers=ALICE)

    assert response.status_code == 200
    assert response.json()["redirect"] == "/documents"
    assert response.json()["notice"]["message"] == "Note deleted!"
    gone = await test_client.get(f"/api/documents/{created['id']}", headers=ALICE)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_delete_failure_still_redirects(test_client):
    created = await _create(test_client)

    response = await test_client.delete(f"/api/documents/{created['id']}", headers=BOB)

    assert response.status_code == 403
    assert response.json() == {
        "notice": {"status": "error", "message": "Failed to delete note."},
        "redirect": "/documents",
    }


@pytest.mark.asyncio
async def test_banner_actions_publish_only_on_success(test_client):
    hub = MagicMock(publish=AsyncMock())
    with patch("notenest.routes.documents.sidebar_hub", hub):
        created = await _create(test_client)
        url = f"/api/documents/{created['id']}"
        await test_client.post(f"{url}/archive", headers=ALICE)
        hub.publish.reset_mock()

        assert (await test_client.post(f"{url}/restore", headers=BOB)).status_code == 403
        assert (await test_client.delete(url, headers=BOB)).status_code == 403
        hub.publish.assert_not_called()

        assert (await test_client.post(f"{url}/restore", headers=ALICE)).status_code == 200
        hub.publish.assert_called_once_with("user_alice")


# ── Uploads ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_upload_and_serve(test_client, sample_image_bytes):
    response = await test_client.post(
        "/api/uploads",
        files={"file": ("cover.jpg", sample_image_bytes, "image/jpeg")},
        headers=ALICE,
    )

    assert response.status_code == 201
    url = response.json()["url"]
    assert url.startswith("/api/files/")

    served = await test_client.get(url)
    assert served.status_code == 200
    assert served.content == sample_image_bytes
    assert served.headers["content-type"] == "image/jpeg"


@pytest.mark.asyncio
async def test_upload_requires_identity(test_client, sample_image_bytes):
    response = await test_client.post(
        "/api/uploads", files={"file": ("cover.jpg", sample_image_bytes, "image/jpeg")}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type(test_client):
    response = await test_client.post(
        "/api/uploads",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=ALICE,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


async def _upload(client, content, headers=ALICE, **form):
    response = await client.post(
        "/api/uploads",
        files={"file": ("cover.jpg", content, "image/jpeg")},
        data=form,
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["url"]


@pytest.mark.asyncio
async def test_replace_keeps_other_users_upload(test_client, sample_image_bytes):
    alice_url = await _upload(test_client, sample_image_bytes)

    await _upload(test_client, sample_image_bytes, headers=MALLORY, replace_target_url=alice_url)

    assert (await test_client.get(alice_url)).status_code == 200


@pytest.mark.asyncio
async def test_cover_removal_keeps_other_users_upload(test_client, sample_image_bytes):
    alice_url = await _upload(test_client, sample_image_bytes)
    created = await _create(test_client, headers=MALLORY)
    url = f"/api/documents/{created['id']}"
    await test_client.patch(url, json={"cover_image": alice_url}, headers=MALLORY)

    response = await test_client.delete(f"{url}/cover-image", headers=MALLORY)

    assert response.status_code == 200
    assert response.json()["cover_image"] is None
    assert (await test_client.get(alice_url)).status_code == 200


@pytest.mark.asyncio
async def test_cover_removal_deletes_own_upload(test_client, sample_image_bytes):
    cover = await _upload(test_client, sample_image_bytes)
    created = await _create(test_client)
    url = f"/api/documents/{created['id']}"
    await test_client.patch(url, json={"cover_image": cover}, headers=ALICE)

    await test_client.delete(f"{url}/cover-image", headers=ALICE)

    assert (await test_client.get(cover)).status_code == 404


@pytest.mark.asyncio
async def test_missing_file(test_client):
    response = await test_client.get("/api/files/2026/01/01/missing.png")
    assert response.status_code == 404


# ── Live Sidebar WebSocket ───────────────────────────────────────────────


def test_websocket_requires_identity():
    from notenest.main import app

    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/sidebar") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_websocket_reports_bad_messages():
    from notenest.main import app

    client = TestClient(app)
    with client.websocket_connect("/ws/sidebar?user=user_alice") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "shout"})
        error = ws.receive_json()
        assert error == {"type": "error", "message": "Unknown message type: 'shout'"}


@pytest.mark.asyncio
async def test_mutations_publish_committed_sidebar(file_sessions):
    """Every snapshot is read in its own session and must show the change."""
    from notenest.main import app
    from notenest.services.live_query import SidebarHub

    hub = SidebarHub()
    subscriber = AsyncMock()
    await hub.connect(subscriber, "user_alice")
    await hub.subscribe(subscriber, None)

    def titles():
        (payload,) = subscriber.send_json.await_args.args
        return [d["title"] for d in payload["documents"]]

    assert titles() == []
    with patch("notenest.routes.documents.sidebar_hub", hub):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            created = await _create(client, title="Draft")
            assert titles() == ["Draft"]

            url = f"/api/documents/{created['id']}"
            await client.patch(url, json={"title": "Final"}, headers=ALICE)
            assert titles() == ["Final"]

            await client.post(f"{url}/archive", headers=ALICE)
            assert titles() == []


def test_websocket_receives_sidebar_after_http_changes(file_sessions):
    from notenest.main import app

    with TestClient(app) as client:
        with client.websocket_connect("/ws/sidebar?user=user_alice") as ws:
            ws.send_json({"type": "subscribe", "parent_document": None})
            assert ws.receive_json()["documents"] == []

            created = client.post("/api/documents", json={"title": "Live"}, headers=ALICE)
            assert created.status_code == 201
            pushed = ws.receive_json()
            assert pushed["type"] == "sidebar"
            assert pushed["parent_document"] is None
            assert [d["title"] for d in pushed["documents"]] == ["Live"]

            client.post(f"/api/documents/{created.json()['id']}/archive", headers=ALICE)
            assert ws.receive_json()["documents"] == []


# ── Rate Limiting ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rate_limit_returns_429():
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    app.add_middleware(RateLimitMiddleware)
    limits = MagicMock(rate_limit_requests=2, rate_limit_window=60)

    with patch("notenest.middleware.rate_limit.settings", limits):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            response = await client.get("/ping")

    assert response.status_code == 429
    assert response.json()["error"] == "rate_limit_exceeded"
    assert int(response.headers["Retry-After"]) >= 1
