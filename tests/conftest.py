"""Shared fixtures for the Family Journal API tests.

Uses SQLite (aiosqlite) by default, so no PostgreSQL is required.
Set TEST_DATABASE_URL to override (e.g. for CI with real PostgreSQL).
"""

import os
import tempfile
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="journal-uploads-"))
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("NOTION_CLIENT_ID", "test-notion-client")
os.environ.setdefault("NOTION_CLIENT_SECRET", "test-notion-secret")

from app.database import Base  # noqa: E402

# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

_engine_kwargs = {}
if TEST_DATABASE_URL.startswith("sqlite"):
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }

_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs)
_TestSession = async_sessionmaker(
    bind=_engine, class_=AsyncSession, expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop tables
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="session", autouse=True)
async def _setup_tables():
    import app.models  # noqa: F401  (populate Base.metadata)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await _engine.dispose()


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from app.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# Per-test session with rollback
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session():
    async with _TestSession() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(db_session: AsyncSession):
    from app.database import get_db
    from app.main import app

    async def _override_get_db():
        # Same contract as app.database.get_db: commit on success, roll back on error
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience: registered users
# ---------------------------------------------------------------------------

def unique_email(prefix: str = "parent") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture()
def register_user(client: AsyncClient):
    """Factory registering a user and returning a context dict.

    Keys: headers, user_id, family_id (None when registered from an
    invitation), role, email, tokens
    """

    async def _register(
        email: str | None = None,
        full_name: str = "Test Parent",
        family_name: str | None = None,
        invitation_token: str | None = None,
    ) -> dict:
        email = email or unique_email()
        payload = {
            "email": email,
            "password": "testpassword123",
            "full_name": full_name,
        }
        if family_name is not None:
            payload["family_name"] = family_name
        if invitation_token is not None:
            payload["invitation_token"] = invitation_token

        resp = await client.post("/api/v1/auth/register", json=payload)
        assert resp.status_code == 200, resp.text
        tokens = resp.json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.status_code == 200, me.text
        data = me.json()
        return {
            "headers": headers,
            "user_id": data["id"],
            "family_id": data["family_id"],
            "role": data["role"],
            "email": email,
            "tokens": tokens,
        }

    return _register


@pytest_asyncio.fixture()
async def registered_parent(register_user):
    """A parent who owns a freshly created family."""
    return await register_user(family_name=f"Test Family {uuid.uuid4().hex[:6]}")


@pytest.fixture()
def join_family(client: AsyncClient, register_user, db_session: AsyncSession):
    """Factory adding a new member to ``owner``'s family via invitation.

    Optionally promotes the member to ``role`` directly in the database.
    """

    async def _join(owner: dict, role: str = "member") -> dict:
        email = unique_email("member")
        resp = await client.post(
            "/api/v1/invitations", json={"email": email}, headers=owner["headers"],
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["invitation"]["token"]

        member = await register_user(email=email, invitation_token=token)
        resp = await client.post(
            "/api/v1/invitations/accept", json={"token": token}, headers=member["headers"],
        )
        assert resp.status_code == 200, resp.text
        member["family_id"] = owner["family_id"]
        member["role"] = "member"

        if role != "member":
            from sqlalchemy import update

            from app.models.family import FamilyMember

            await db_session.execute(
                update(FamilyMember)
                .where(FamilyMember.user_id == uuid.UUID(member["user_id"]))
                .values(role=role)
            )
            await db_session.commit()
            member["role"] = role
        return member

    return _join


@pytest.fixture()
def pending_invitee(client: AsyncClient, register_user):
    """Factory registering a user from ``owner``'s invitation without accepting it.

    The returned context has no family yet; ``invitation_token`` is set.
    """

    async def _pending(owner: dict) -> dict:
        email = unique_email("invitee")
        resp = await client.post(
            "/api/v1/invitations", json={"email": email}, headers=owner["headers"],
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["invitation"]["token"]

        user = await register_user(email=email, invitation_token=token)
        assert user["family_id"] is None
        user["invitation_token"] = token
        return user

    return _pending
