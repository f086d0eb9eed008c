"""Role predicates over club membership snapshots."""

from __future__ import annotations

from collections.abc import Iterable

from club_voting.schemas.voting import Membership
from club_voting.utils.errors import ForbiddenError

MANAGER_ROLES = frozenset({"leader", "moderator"})


def find_membership(members: Iterable[Membership], user_id: str) -> Membership | None:
    """Return the user's membership row, if any."""
    for member in members:
        if member.user_id == str(user_id):
            return member
    return None


def active_role(members: Iterable[Membership], user_id: str) -> str | None:
    """Return the user's role when they are an active member, else None."""
    member = find_membership(members, user_id)
    if member is None or member.status != "active":
        return None
    return member.role


def can_manage(members: Iterable[Membership], user_id: str) -> bool:
    """Active leaders and moderators manage votings."""
    return active_role(members, user_id) in MANAGER_ROLES


def can_vote(members: Iterable[Membership], user_id: str) -> bool:
    """Any active member may vote."""
    return active_role(members, user_id) is not None


def can_suggest(members: Iterable[Membership], user_id: str) -> bool:
    """Any active member may suggest candidates."""
    return can_vote(members, user_id)


def ensure_can_manage(members: Iterable[Membership], user_id: str, reason: str) -> None:
    """Raise ForbiddenError unless the user is an active leader or moderator."""
    if not can_manage(members, user_id):
        raise ForbiddenError(reason)


def ensure_can_vote(members: Iterable[Membership], user_id: str, reason: str) -> None:
    """Raise ForbiddenError unless the user is an active member."""
    if not can_vote(members, user_id):
        raise ForbiddenError(reason)
