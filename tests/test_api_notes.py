"""Integration tests for /api/v1/families/{family_id}/notes."""

import uuid


def _notes_url(ctx: dict) -> str:
    return f"/api/v1/families/{ctx['family_id']}/notes/"


async def _create_note(client, ctx, **body):
    payload = {"transcript": "We built a sandcastle.", **body}
    resp = await client.post(_notes_url(ctx), json=payload, headers=ctx["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestNotes:
    async def test_create_note(self, client, registered_parent):
        note = await _create_note(
            client, registered_parent,
            summary="Beach day",
            tags=["creativity", "outdoors"],
            children=["Mia"],
            structured_content={"whatHappened": "Sandcastle"},
            duration=42,
        )
        assert note["user_id"] == registered_parent["user_id"]
        assert note["tags"] == ["creativity", "outdoors"]
        assert note["children"] == ["Mia"]
        assert note["structured_content"] == {"whatHappened": "Sandcastle"}
        assert note["date"] is not None

    async def test_list_newest_first_with_limit(self, client, registered_parent):
        await _create_note(client, registered_parent, summary="old", date="2026-01-01T08:00:00Z")
        await _create_note(client, registered_parent, summary="new", date="2026-03-01T08:00:00Z")
        await _create_note(client, registered_parent, summary="mid", date="2026-02-01T08:00:00Z")

        resp = await client.get(_notes_url(registered_parent), headers=registered_parent["headers"])
        assert [n["summary"] for n in resp.json()] == ["new", "mid", "old"]

        resp = await client.get(
            _notes_url(registered_parent), params={"limit": 2},
            headers=registered_parent["headers"],
        )
        assert len(resp.json()) == 2

    async def test_filter_by_child(self, client, registered_parent):
        await _create_note(client, registered_parent, summary="both", children=["Mia", "Leo"])
        await _create_note(client, registered_parent, summary="leo", children=["Leo"])
        await _create_note(client, registered_parent, summary="nobody")

        resp = await client.get(
            _notes_url(registered_parent), params={"child": "mia"},
            headers=registered_parent["headers"],
        )
        assert [n["summary"] for n in resp.json()] == ["both"]

    async def test_family_sees_each_others_notes(self, client, registered_parent, join_family):
        member = await join_family(registered_parent)
        await _create_note(client, registered_parent, summary="from owner")

        resp = await client.get(_notes_url(member), headers=member["headers"])
        assert [n["summary"] for n in resp.json()] == ["from owner"]

    async def test_author_edits(self, client, registered_parent, join_family):
        member = await join_family(registered_parent)
        note = await _create_note(client, member, tags=["sleep"])

        resp = await client.put(
            f"{_notes_url(member)}{note['id']}",
            json={"summary": "Edited", "tags": None},
            headers=member["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["summary"] == "Edited"
        assert resp.json()["tags"] == ["sleep"]

    async def test_member_cannot_edit_others(self, client, registered_parent, join_family):
        member = await join_family(registered_parent)
        note = await _create_note(client, registered_parent)

        resp = await client.put(
            f"{_notes_url(member)}{note['id']}",
            json={"summary": "Hijacked"},
            headers=member["headers"],
        )
        assert resp.status_code == 403

        resp = await client.delete(f"{_notes_url(member)}{note['id']}", headers=member["headers"])
        assert resp.status_code == 403

    async def test_admin_moderates(self, client, registered_parent, join_family):
        admin = await join_family(registered_parent, role="admin")
        note = await _create_note(client, registered_parent)

        resp = await client.delete(f"{_notes_url(admin)}{note['id']}", headers=admin["headers"])
        assert resp.status_code == 204

        resp = await client.get(
            f"{_notes_url(registered_parent)}{note['id']}",
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 404

    async def test_unknown_note(self, client, registered_parent):
        resp = await client.get(
            f"{_notes_url(registered_parent)}{uuid.uuid4()}",
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 404

    async def test_other_family_forbidden(self, client, registered_parent, register_user):
        other = await register_user(family_name="Neighbours")
        resp = await client.get(_notes_url(other), headers=registered_parent["headers"])
        assert resp.status_code == 403
