"""Public user profiles used to decorate votings on read."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any, Protocol

from club_voting.services.common import SupabaseService
from supabase import Client


class UserDirectory(Protocol):
    """Lookup of public profile fields by user id."""

    def get_users(self, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]: ...


class NullUserDirectory:
    """Directory that knows nobody; votings keep bare user ids."""

    def get_users(self, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        return {}


class SupabaseUserDirectory:
    """Read ``id, username, avatar_url`` from the ``users`` table."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def get_users(self, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        return self.db.get_users_map(user_ids)


class InMemoryUserDirectory:
    """Process-local profile table."""

    def __init__(self) -> None:
        self._users: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def set_user(self, user_id: str, username: str, avatar_url: str | None = None) -> None:
        profile = {"id": str(user_id), "username": username, "avatar_url": avatar_url}
        with self._lock:
            self._users[str(user_id)] = profile

    def get_users(self, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {
                str(uid): dict(self._users[str(uid)])
                for uid in user_ids
                if str(uid) in self._users
            }
