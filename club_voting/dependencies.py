"""FastAPI dependency injection helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends, Header

from club_voting.config import settings
from club_voting.services.common import cache_get, cache_set
from club_voting.services.media_catalog import MediaCatalog, NullMediaCatalog, SupabaseMediaCatalog
from club_voting.services.membership import (
    InMemoryMembershipProvider,
    MembershipProvider,
    SupabaseMembershipProvider,
)
from club_voting.services.user_directory import (
    InMemoryUserDirectory,
    NullUserDirectory,
    SupabaseUserDirectory,
    UserDirectory,
)
from club_voting.services.voting_service import VotingService
from club_voting.services.voting_store import (
    InMemoryVotingStore,
    SupabaseVotingStore,
    VotingStore,
)
from club_voting.utils.errors import UnauthorizedError
from club_voting.utils.supabase_client import get_service_client, get_supabase_client
from club_voting.utils.time import Clock, SystemClock

_token_cache: dict[str, tuple[float, Any]] = {}


def get_authenticated_user(authorization: str = Header(None)) -> Any:
    """Extract and validate a Supabase JWT from the Authorization header.

    Raises:
        UnauthorizedError: 401 if the header is missing, malformed, or
            the token cannot be validated.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authorization header")

    token = authorization.split(" ", 1)[1]
    cached_user = cache_get(_token_cache, token)
    if cached_user is not None:
        return cached_user

    supabase = get_supabase_client()

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise UnauthorizedError("Invalid token")
        cache_set(
            _token_cache,
            token,
            response.user,
            settings.auth_token_cache_ttl_seconds,
            settings.auth_token_cache_max_entries,
        )
        return response.user
    except UnauthorizedError:
        raise
    except Exception as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


def get_current_user_id(user: Any = Depends(get_authenticated_user)) -> str:
    """Extract a stable user id string from the Supabase user object."""
    return str(user.id)


@lru_cache(maxsize=1)
def get_voting_store() -> VotingStore:
    """Return the configured voting store."""
    if settings.uses_memory_backend:
        return InMemoryVotingStore()
    return SupabaseVotingStore(get_service_client())


@lru_cache(maxsize=1)
def get_membership_provider() -> MembershipProvider:
    """Return the configured membership provider."""
    if settings.uses_memory_backend:
        return InMemoryMembershipProvider()
    return SupabaseMembershipProvider(get_service_client())


@lru_cache(maxsize=1)
def get_media_catalog() -> MediaCatalog:
    """Return the media catalog, or a no-op one when enrichment is off."""
    if not settings.media_catalog_enabled or settings.uses_memory_backend:
        return NullMediaCatalog()
    return SupabaseMediaCatalog(get_service_client())


@lru_cache(maxsize=1)
def get_user_directory() -> UserDirectory:
    """Return the profile directory used to decorate votings on read."""
    if not settings.user_lookup_enabled:
        return NullUserDirectory()
    if settings.uses_memory_backend:
        return InMemoryUserDirectory()
    return SupabaseUserDirectory(get_service_client())


def get_clock() -> Clock:
    """Return the wall clock used by voting transitions."""
    return SystemClock()


def get_voting_service(
    store: VotingStore = Depends(get_voting_store),
    memberships: MembershipProvider = Depends(get_membership_provider),
    catalog: MediaCatalog = Depends(get_media_catalog),
    users: UserDirectory = Depends(get_user_directory),
    clock: Clock = Depends(get_clock),
) -> VotingService:
    """Build a voting service from the configured collaborators."""
    return VotingService(
        store=store,
        memberships=memberships,
        clock=clock,
        catalog=catalog,
        max_retries=settings.voting_save_max_retries,
        allow_testing_mode=settings.allow_testing_mode,
        late_edit_max_past_days=settings.late_edit_max_past_days,
        users=users,
    )
