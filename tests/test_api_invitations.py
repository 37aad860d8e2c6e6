"""Integration tests for the invitation workflow (/api/v1/invitations)."""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update

from app.models.family import FamilyMember
from app.models.invitation import FamilyInvitation


def _email(prefix: str = "guest") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def _invite(client, owner, email, headers=None):
    return await client.post(
        "/api/v1/invitations", json={"email": email}, headers=headers or owner["headers"],
    )


async def _accept(client, user, token):
    return await client.post(
        "/api/v1/invitations/accept", json={"token": token}, headers=user["headers"],
    )


async def _membership_count(db_session, user_id: str, family_id: str | None = None) -> int:
    query = select(func.count(FamilyMember.id)).where(FamilyMember.user_id == uuid.UUID(user_id))
    if family_id is not None:
        query = query.where(FamilyMember.family_id == uuid.UUID(family_id))
    return (await db_session.execute(query)).scalar_one()


class TestSendInvitation:
    async def test_owner_invites(self, client, registered_parent):
        email = _email()
        resp = await _invite(client, registered_parent, email)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        invitation = data["invitation"]
        assert invitation["status"] == "pending"
        assert invitation["email"] == email
        assert invitation["family_id"] == registered_parent["family_id"]
        assert len(invitation["token"]) == 64
        assert data["invitationLink"].endswith(f"/accept-invitation?token={invitation['token']}")

    async def test_link_uses_request_origin(self, client, registered_parent):
        resp = await _invite(
            client, registered_parent, _email(),
            headers={**registered_parent["headers"], "Origin": "https://journal.example.com"},
        )
        assert resp.json()["invitationLink"].startswith(
            "https://journal.example.com/accept-invitation?token="
        )

    async def test_tokens_are_unique(self, client, registered_parent):
        first = (await _invite(client, registered_parent, _email())).json()
        second = (await _invite(client, registered_parent, _email())).json()
        assert first["invitation"]["token"] != second["invitation"]["token"]

    async def test_admin_invites(self, client, registered_parent, join_family):
        admin = await join_family(registered_parent, role="admin")
        resp = await _invite(client, admin, _email())
        assert resp.status_code == 200

    async def test_member_cannot_invite(self, client, registered_parent, join_family):
        member = await join_family(registered_parent)
        resp = await _invite(client, member, _email())
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Only family owners or admins can send invitations"

    async def test_invalid_email(self, client, registered_parent):
        resp = await _invite(client, registered_parent, "not-an-email")
        assert resp.status_code == 400

    async def test_empty_email(self, client, registered_parent):
        resp = await _invite(client, registered_parent, "   ")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email is required"

    async def test_missing_email(self, client, registered_parent):
        resp = await client.post("/api/v1/invitations", json={}, headers=registered_parent["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email is required"

    async def test_overlong_email(self, client, registered_parent):
        resp = await _invite(client, registered_parent, "a" * 250 + "@example.com")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid email format"

    async def test_cannot_invite_self(self, client, registered_parent):
        resp = await _invite(client, registered_parent, registered_parent["email"].upper())
        assert resp.status_code == 400

    async def test_duplicate_pending(self, client, registered_parent):
        email = _email()
        assert (await _invite(client, registered_parent, email)).status_code == 200
        resp = await _invite(client, registered_parent, email.upper())
        assert resp.status_code == 400

    async def test_existing_member(self, client, registered_parent, join_family):
        member = await join_family(registered_parent)
        resp = await _invite(client, registered_parent, member["email"])
        assert resp.status_code == 400

    async def test_without_family(self, client, registered_parent, pending_invitee):
        loner = await pending_invitee(registered_parent)
        resp = await _invite(client, loner, _email())
        assert resp.status_code == 404

    async def test_requires_auth(self, client):
        resp = await client.post("/api/v1/invitations", json={"email": _email()})
        assert resp.status_code == 401


class TestAcceptInvitation:
    async def test_accept_scenario(self, client, db_session, registered_parent, register_user):
        email = _email("invitee")
        token = (await _invite(client, registered_parent, email)).json()["invitation"]["token"]
        invitee = await register_user(email=email, invitation_token=token)

        resp = await _accept(client, invitee, token)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        me = (await client.get("/api/v1/auth/me", headers=invitee["headers"])).json()
        assert me["family_id"] == registered_parent["family_id"]
        assert me["role"] == "member"

        # Single use: a second attempt is rejected and adds nothing
        again = await _accept(client, invitee, token)
        assert again.status_code == 400
        assert again.json()["detail"] == "This invitation has already been accepted"
        assert await _membership_count(db_session, invitee["user_id"]) == 1

        invitation = (await db_session.execute(
            select(FamilyInvitation).where(FamilyInvitation.token == token)
        )).scalar_one()
        assert invitation.status == "accepted"

    async def test_email_match_is_case_insensitive(self, client, registered_parent, register_user):
        email = _email("Mixed")
        token = (await _invite(client, registered_parent, email.upper())).json()["invitation"]["token"]
        invitee = await register_user(email=email.lower(), invitation_token=token)

        resp = await _accept(client, invitee, token)
        assert resp.status_code == 200

    async def test_wrong_recipient(self, client, db_session, registered_parent, register_user):
        token = (await _invite(client, registered_parent, _email())).json()["invitation"]["token"]
        stranger = await register_user(invitation_token=token)

        resp = await _accept(client, stranger, token)
        assert resp.status_code == 403
        assert await _membership_count(db_session, stranger["user_id"], registered_parent["family_id"]) == 0

    async def test_member_of_another_family(self, client, db_session, registered_parent, register_user):
        email = _email("taken")
        other = await register_user(email=email, family_name="Elsewhere")
        token = (await _invite(client, registered_parent, email)).json()["invitation"]["token"]

        resp = await _accept(client, other, token)
        assert resp.status_code == 400
        assert resp.json()["detail"] == (
            "You are already a member of another family. Please leave first."
        )
        assert await _membership_count(db_session, other["user_id"]) == 1

        invitation = (await db_session.execute(
            select(FamilyInvitation).where(FamilyInvitation.token == token)
        )).scalar_one()
        assert invitation.status == "pending"

    async def test_already_in_this_family_consumes_token(
        self, client, db_session, registered_parent, join_family,
    ):
        member = await join_family(registered_parent)
        stray = FamilyInvitation(
            family_id=uuid.UUID(registered_parent["family_id"]),
            invited_by=uuid.UUID(registered_parent["user_id"]),
            email=member["email"],
            token=uuid.uuid4().hex,
        )
        db_session.add(stray)
        await db_session.flush()

        resp = await _accept(client, member, stray.token)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "You are already a member of this family"
        await db_session.refresh(stray)
        assert stray.status == "accepted"
        assert await _membership_count(db_session, member["user_id"]) == 1

    async def test_expired(self, client, db_session, registered_parent, register_user):
        email = _email("late")
        invitation = (await _invite(client, registered_parent, email)).json()["invitation"]
        await db_session.execute(
            update(FamilyInvitation)
            .where(FamilyInvitation.id == uuid.UUID(invitation["id"]))
            .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        invitee = await register_user(email=email, invitation_token=invitation["token"])

        # Nothing changes until someone tries to accept
        preview = await client.get(f"/api/v1/invitations/{invitation['token']}")
        assert preview.json()["status"] == "expired"
        stored = await db_session.get(FamilyInvitation, uuid.UUID(invitation["id"]))
        assert stored.status == "pending"

        resp = await _accept(client, invitee, invitation["token"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "This invitation has expired"

        await db_session.refresh(stored)
        assert stored.status == "expired"
        assert await _membership_count(db_session, invitee["user_id"], registered_parent["family_id"]) == 0

    async def test_cancelled(self, client, db_session, registered_parent, register_user):
        email = _email("cancelled")
        invitation = (await _invite(client, registered_parent, email)).json()["invitation"]
        cancel = await client.post(
            f"/api/v1/families/{registered_parent['family_id']}"
            f"/invitations/{invitation['id']}/cancel",
            headers=registered_parent["headers"],
        )
        assert cancel.status_code == 200

        invitee = await register_user(email=email, invitation_token=invitation["token"])
        resp = await _accept(client, invitee, invitation["token"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "This invitation has been cancelled"
        assert await _membership_count(db_session, invitee["user_id"], registered_parent["family_id"]) == 0

    async def test_unknown_token(self, client, registered_parent):
        resp = await _accept(client, registered_parent, "f" * 64)
        assert resp.status_code == 404

    async def test_empty_token(self, client, registered_parent):
        resp = await _accept(client, registered_parent, "")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Token is required"

    async def test_missing_token(self, client, registered_parent):
        resp = await client.post(
            "/api/v1/invitations/accept", json={}, headers=registered_parent["headers"],
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Token is required"

    async def test_requires_auth(self, client):
        resp = await client.post("/api/v1/invitations/accept", json={"token": "abc"})
        assert resp.status_code == 401


class TestPreview:
    async def test_preview(self, client, registered_parent):
        email = _email()
        token = (await _invite(client, registered_parent, email)).json()["invitation"]["token"]

        resp = await client.get(f"/api/v1/invitations/{token}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == email
        assert data["status"] == "pending"
        assert data["family_name"].startswith("Test Family")

    async def test_preview_unknown(self, client):
        resp = await client.get(f"/api/v1/invitations/{'0' * 64}")
        assert resp.status_code == 404
