"""Shared Supabase data access helpers."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from typing import Any

from postgrest import APIError

from club_voting.config import settings
from club_voting.utils.errors import DataAccessError, NotFoundError
from supabase import Client

logger = logging.getLogger(__name__)
_cache_lock = threading.Lock()
_user_cache: dict[str, tuple[float, dict[str, Any]]] = {}

USER_COLUMNS = "id,username,avatar_url"


def cache_get(cache: dict[Any, tuple[float, Any]], key: Any) -> Any | None:
    """Return a cache value when present and not expired."""
    now = time.monotonic()
    with _cache_lock:
        entry = cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            cache.pop(key, None)
            return None
        return value


def cache_set(
    cache: dict[Any, tuple[float, Any]],
    key: Any,
    value: Any,
    ttl_seconds: int,
    max_entries: int | None = None,
) -> None:
    """Store a bounded cache value with TTL."""
    if ttl_seconds <= 0:
        return

    with _cache_lock:
        bounded_max_entries = max(1, max_entries or settings.data_cache_max_entries)
        if len(cache) >= bounded_max_entries:
            oldest_key = next(iter(cache))
            cache.pop(oldest_key, None)
        cache[key] = (time.monotonic() + ttl_seconds, value)


class SupabaseService:
    """Thin helper wrapper around a Supabase client."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def execute(self, query, default: Any = None) -> Any:
        """Execute a Supabase query and normalize API errors."""
        try:
            response = query.execute()
            data = response.data
            return default if data is None and default is not None else data
        except APIError as exc:
            message = getattr(exc, "message", None) or "Database request failed"
            logger.error(
                "Supabase request failed: %s (code=%s)", message, getattr(exc, "code", None)
            )
            raise DataAccessError(str(message)) from exc

    def select_one(
        self,
        table: str,
        filters: dict[str, Any],
        columns: str = "*",
        not_found_label: str | None = None,
    ) -> dict[str, Any]:
        """Select a single row and raise NotFoundError when missing."""
        query = self.client.table(table).select(columns)
        for key, value in filters.items():
            query = query.eq(key, value)
        rows = self.execute(query.limit(1), default=[])
        if not rows:
            label = not_found_label or table
            raise NotFoundError(label)
        return rows[0]

    def select_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select many rows from a table with optional equality filters."""
        query = self.client.table(table).select(columns)
        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)
        if limit:
            query = query.limit(limit)
        return self.execute(query, default=[])

    def update(
        self,
        table: str,
        filters: dict[str, Any],
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows by equality filters and return the updated rows."""
        query = self.client.table(table).update(payload)
        for key, value in filters.items():
            query = query.eq(key, value)
        return self.execute(query, default=[])

    def get_users_map(self, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Fetch public user fields for many users and return an id-keyed mapping."""
        ids = list({str(uid) for uid in user_ids})
        if not ids:
            return {}

        result: dict[str, dict[str, Any]] = {}
        missing_ids: list[str] = []
        for user_id in ids:
            cached_user = cache_get(_user_cache, user_id)
            if cached_user is None:
                missing_ids.append(user_id)
                continue
            result[user_id] = dict(cached_user)

        if missing_ids:
            rows = self.execute(
                self.client.table("users").select(USER_COLUMNS).in_("id", missing_ids),
                default=[],
            )
            for row in rows:
                user_key = str(row["id"])
                user_payload = dict(row)
                result[user_key] = user_payload
                cache_set(_user_cache, user_key, user_payload, settings.user_cache_ttl_seconds)

        return result


def map_users_on_field(
    rows: list[dict[str, Any]],
    users: dict[str, dict[str, Any]],
    user_key: str = "user_id",
    out_key: str = "user",
) -> list[dict[str, Any]]:
    """Attach user records to rows based on ``user_key``."""
    enriched: list[dict[str, Any]] = []
    for row in rows:
        payload = dict(row)
        payload[out_key] = users.get(str(row[user_key]))
        enriched.append(payload)
    return enriched
