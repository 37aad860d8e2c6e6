"""Role capabilities.

Every mutating operation asks :func:`require_capability` whether the
caller's family role allows it.  The table below is the only place where
roles are mapped to operations.
"""

from enum import StrEnum

from fastapi import HTTPException, status


class Operation(StrEnum):
    UPDATE_FAMILY = "update_family"
    INVITE_MEMBER = "invite_member"
    CANCEL_INVITATION = "cancel_invitation"
    SET_MEMBER_LABEL = "set_member_label"
    MANAGE_CHILDREN = "manage_children"
    WRITE_NOTES = "write_notes"
    MODERATE_NOTES = "moderate_notes"  # edit or delete notes written by others
    MANAGE_DRAWINGS = "manage_drawings"


_MEMBER = frozenset({
    Operation.MANAGE_CHILDREN,
    Operation.WRITE_NOTES,
    Operation.MANAGE_DRAWINGS,
})

_ADMIN = _MEMBER | {
    Operation.UPDATE_FAMILY,
    Operation.INVITE_MEMBER,
    Operation.CANCEL_INVITATION,
    Operation.MODERATE_NOTES,
}

_OWNER = _ADMIN | {Operation.SET_MEMBER_LABEL}

ROLE_CAPABILITIES: dict[str, frozenset[Operation]] = {
    "owner": frozenset(_OWNER),
    "admin": frozenset(_ADMIN),
    "member": _MEMBER,
}


def can(role: str | None, operation: Operation) -> bool:
    """Return True if ``role`` may perform ``operation``.  Unknown roles may do nothing."""
    return operation in ROLE_CAPABILITIES.get(role or "", frozenset())


def require_capability(membership, operation: Operation, detail: str | None = None):
    """Raise 403 unless the membership's role allows ``operation``.

    Returns the membership so it can be used inline.
    """
    if membership is None or not can(membership.role, operation):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail or "Insufficient permission",
        )
    return membership
