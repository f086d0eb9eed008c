"""Role gate predicate tests."""

from __future__ import annotations

import pytest

from club_voting.schemas.voting import Membership
from club_voting.services import role_gate
from club_voting.utils.errors import ForbiddenError

MEMBERS = [
    Membership(user_id="leader", role="leader"),
    Membership(user_id="mod", role="moderator"),
    Membership(user_id="member", role="member"),
    Membership(user_id="pending-mod", role="moderator", status="pending"),
    Membership(user_id="banned", role="member", status="banned"),
]


@pytest.mark.parametrize(
    ("user_id", "manage", "vote"),
    [
        ("leader", True, True),
        ("mod", True, True),
        ("member", False, True),
        ("pending-mod", False, False),
        ("banned", False, False),
        ("stranger", False, False),
    ],
)
def test_predicates(user_id: str, manage: bool, vote: bool) -> None:
    """Only active members count; managing needs leader or moderator."""
    assert role_gate.can_manage(MEMBERS, user_id) is manage
    assert role_gate.can_vote(MEMBERS, user_id) is vote
    assert role_gate.can_suggest(MEMBERS, user_id) is vote


def test_ensure_can_manage_raises_with_reason() -> None:
    """Failing checks surface the supplied reason."""
    with pytest.raises(ForbiddenError) as excinfo:
        role_gate.ensure_can_manage(MEMBERS, "member", "Only leaders")
    assert excinfo.value.message == "Only leaders"


def test_active_role_ignores_inactive_members() -> None:
    """Inactive members have no effective role."""
    assert role_gate.active_role(MEMBERS, "mod") == "moderator"
    assert role_gate.active_role(MEMBERS, "pending-mod") is None
