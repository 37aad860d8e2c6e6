"""Integration tests for the /api/v1/notion endpoints (Notion API patched out)."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from app.models.notion import NotionToken, OAuthState

TOKEN_DATA = {"access_token": "secret_abc", "workspace_id": "ws-1", "workspace_name": "Home"}


async def _state_token(client, ctx) -> str:
    resp = await client.post("/api/v1/notion/oauth-state", headers=ctx["headers"])
    assert resp.status_code == 200, resp.text
    return resp.json()["state_token"]


async def _connect(client, ctx):
    state = await _state_token(client, ctx)
    with patch("app.routers.notion.exchange_code", new=AsyncMock(return_value=TOKEN_DATA)):
        resp = await client.get("/api/v1/notion/oauth/callback", params={"code": "c", "state": state})
    assert resp.status_code == 200, resp.text


class TestOAuth:
    async def test_state_requires_auth(self, client):
        resp = await client.post("/api/v1/notion/oauth-state")
        assert resp.status_code == 401

    async def test_state_token(self, client, db_session, registered_parent):
        token = await _state_token(client, registered_parent)
        assert len(token) == 64

        stored = (await db_session.execute(
            select(OAuthState).where(OAuthState.state_token == token)
        )).scalar_one()
        assert str(stored.user_id) == registered_parent["user_id"]
        assert not stored.is_expired

    async def test_stale_states_purged(self, client, db_session, registered_parent):
        stale = OAuthState(
            user_id=uuid.UUID(registered_parent["user_id"]),
            state_token=uuid.uuid4().hex,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        db_session.add(stale)
        await db_session.flush()
        stale_token = stale.state_token

        await _state_token(client, registered_parent)

        remaining = (await db_session.execute(
            select(OAuthState.state_token).where(
                OAuthState.user_id == uuid.UUID(registered_parent["user_id"])
            )
        )).scalars().all()
        assert stale_token not in remaining
        assert len(remaining) == 1

    async def test_authorize_url(self, client, registered_parent):
        resp = await client.get("/api/v1/notion/authorize-url", headers=registered_parent["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["url"].startswith("https://api.notion.com/v1/oauth/authorize?")
        assert f"state={data['state_token']}" in data["url"]
        assert "client_id=test-notion-client" in data["url"]

    async def test_callback_stores_token(self, client, db_session, registered_parent):
        state = await _state_token(client, registered_parent)
        exchange = AsyncMock(return_value=TOKEN_DATA)

        with patch("app.routers.notion.exchange_code", new=exchange):
            resp = await client.get(
                "/api/v1/notion/oauth/callback", params={"code": "the-code", "state": state},
            )

        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "NOTION_AUTH_SUCCESS" in resp.text
        exchange.assert_awaited_once_with("the-code")

        token = (await db_session.execute(
            select(NotionToken).where(NotionToken.user_id == uuid.UUID(registered_parent["user_id"]))
        )).scalar_one()
        assert token.access_token == "secret_abc"
        assert token.workspace_name == "Home"

    async def test_state_is_single_use(self, client, registered_parent):
        state = await _state_token(client, registered_parent)
        with patch("app.routers.notion.exchange_code", new=AsyncMock(return_value=TOKEN_DATA)):
            first = await client.get("/api/v1/notion/oauth/callback", params={"code": "c", "state": state})
            second = await client.get("/api/v1/notion/oauth/callback", params={"code": "c", "state": state})
        assert first.status_code == 200
        assert second.status_code == 400
        assert "Connection Failed" in second.text

    async def test_unknown_state(self, client):
        exchange = AsyncMock(return_value=TOKEN_DATA)
        with patch("app.routers.notion.exchange_code", new=exchange):
            resp = await client.get(
                "/api/v1/notion/oauth/callback", params={"code": "c", "state": "nope"},
            )
        assert resp.status_code == 400
        exchange.assert_not_awaited()

    async def test_expired_state(self, client, db_session, registered_parent):
        state = OAuthState(
            user_id=uuid.UUID(registered_parent["user_id"]),
            state_token=uuid.uuid4().hex,
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        db_session.add(state)
        await db_session.flush()

        resp = await client.get(
            "/api/v1/notion/oauth/callback", params={"code": "c", "state": state.state_token},
        )
        assert resp.status_code == 400

    async def test_missing_code_consumes_state(self, client, db_session, registered_parent):
        state = await _state_token(client, registered_parent)
        resp = await client.get(
            "/api/v1/notion/oauth/callback", params={"state": state, "error": "access_denied"},
        )
        assert resp.status_code == 400
        assert "access_denied" in resp.text

        remaining = (await db_session.execute(
            select(OAuthState).where(OAuthState.state_token == state)
        )).scalar_one_or_none()
        assert remaining is None


class TestConnection:
    async def test_not_connected(self, client, registered_parent):
        resp = await client.get("/api/v1/notion/connection", headers=registered_parent["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"connected": False, "workspace_name": None, "database_id": None}

    async def test_connect_configure_disconnect(self, client, registered_parent):
        await _connect(client, registered_parent)
        headers = registered_parent["headers"]

        resp = await client.get("/api/v1/notion/connection", headers=headers)
        assert resp.json()["connected"] is True
        assert resp.json()["workspace_name"] == "Home"

        resp = await client.put(
            "/api/v1/notion/connection", json={"database_id": " abc123 "}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["database_id"] == "abc123"

        resp = await client.delete("/api/v1/notion/connection", headers=headers)
        assert resp.status_code == 204
        resp = await client.get("/api/v1/notion/connection", headers=headers)
        assert resp.json()["connected"] is False

    async def test_configure_without_connection(self, client, registered_parent):
        resp = await client.put(
            "/api/v1/notion/connection", json={"database_id": "abc"},
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 404


class TestSaveToNotion:
    async def test_requires_connection(self, client, registered_parent):
        resp = await client.post(
            "/api/v1/notion/pages", json={"transcript": "Hello"},
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 400
        assert "connect to Notion" in resp.json()["detail"]

    async def test_creates_page(self, client, registered_parent):
        await _connect(client, registered_parent)
        create = AsyncMock(return_value={"id": "page-1", "url": "https://notion.so/page-1"})

        with patch("app.routers.notion.create_page", new=create):
            resp = await client.post("/api/v1/notion/pages", json={
                "transcript": "We went to the zoo.",
                "audioUrl": "https://cdn.example.com/zoo.webm",
                "children": ["Mia"],
                "tags": ["curiosity"],
                "duration": 61,
            }, headers=registered_parent["headers"])

        assert resp.status_code == 200, resp.text
        assert resp.json() == {"success": True, "pageId": "page-1", "url": "https://notion.so/page-1"}

        access_token, parent_id, title, blocks = create.await_args.args
        assert access_token == "secret_abc"
        assert parent_id is None
        assert title.endswith(" - Mia")
        assert any(b["type"] == "bulleted_list_item" for b in blocks)

    async def test_upstream_failure(self, client, registered_parent):
        from app.services.notion_service import NotionError

        await _connect(client, registered_parent)
        with patch(
            "app.routers.notion.create_page",
            new=AsyncMock(side_effect=NotionError("Failed to create Notion page: boom")),
        ):
            resp = await client.post(
                "/api/v1/notion/pages", json={"transcript": "x"},
                headers=registered_parent["headers"],
            )
        assert resp.status_code == 500
        assert "boom" in resp.json()["detail"]

    async def test_transcript_required(self, client, registered_parent):
        resp = await client.post(
            "/api/v1/notion/pages", json={"transcript": ""},
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 422
