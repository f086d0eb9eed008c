"""Club membership lookups consumed by the role gate."""

from __future__ import annotations

import threading
from typing import Any, Protocol

from club_voting.config import settings
from club_voting.schemas.voting import Membership
from club_voting.services.common import SupabaseService, cache_get, cache_set
from supabase import Client

_membership_cache: dict[tuple[str, str], tuple[float, Any]] = {}


class MembershipProvider(Protocol):
    """Source of a user's role and status in a club."""

    def get_membership(self, club_id: str, user_id: str) -> Membership | None: ...


class SupabaseMembershipProvider:
    """Read memberships from the ``club_members`` table with a short TTL cache."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def get_membership(self, club_id: str, user_id: str) -> Membership | None:
        cache_key = (str(club_id), str(user_id))
        cached = cache_get(_membership_cache, cache_key)
        if cached is not None:
            return Membership.model_validate(cached) if cached else None

        rows = self.db.select_many(
            "club_members",
            filters={"club_id": club_id, "user_id": user_id},
            columns="user_id,role,status",
            limit=1,
        )
        membership = Membership.model_validate(rows[0]) if rows else None
        cache_set(
            _membership_cache,
            cache_key,
            membership.model_dump() if membership else {},
            settings.membership_cache_ttl_seconds,
        )
        return membership


class InMemoryMembershipProvider:
    """Process-local membership table."""

    def __init__(self) -> None:
        self._members: dict[tuple[str, str], Membership] = {}
        self._lock = threading.Lock()

    def set_member(
        self,
        club_id: str,
        user_id: str,
        role: str = "member",
        status: str = "active",
    ) -> Membership:
        membership = Membership(user_id=str(user_id), role=role, status=status)
        with self._lock:
            self._members[(str(club_id), str(user_id))] = membership
        return membership

    def get_membership(self, club_id: str, user_id: str) -> Membership | None:
        with self._lock:
            return self._members.get((str(club_id), str(user_id)))
