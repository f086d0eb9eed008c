"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi import Header
from fastapi.testclient import TestClient


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
    os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
    os.environ.setdefault("STORAGE_BACKEND", "memory")


_set_default_env()

from club_voting.schemas.voting import VotingCreate  # noqa: E402
from club_voting.services.membership import InMemoryMembershipProvider  # noqa: E402
from club_voting.services.user_directory import InMemoryUserDirectory  # noqa: E402
from club_voting.services.voting_service import VotingService  # noqa: E402
from club_voting.services.voting_store import InMemoryVotingStore  # noqa: E402
from club_voting.utils.time import FixedClock  # noqa: E402

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
CLUB_ID = "club-1"


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at T0."""
    return FixedClock(T0)


@pytest.fixture
def store() -> InMemoryVotingStore:
    """In-memory store holding one empty club."""
    voting_store = InMemoryVotingStore()
    voting_store.create_club(CLUB_ID)
    return voting_store


@pytest.fixture
def memberships() -> InMemoryMembershipProvider:
    """Membership table with one user per role and status."""
    provider = InMemoryMembershipProvider()
    provider.set_member(CLUB_ID, "leader-1", role="leader")
    provider.set_member(CLUB_ID, "mod-1", role="moderator")
    for index in range(1, 4):
        provider.set_member(CLUB_ID, f"member-{index}")
    provider.set_member(CLUB_ID, "pending-1", status="pending")
    provider.set_member(CLUB_ID, "banned-mod", role="moderator", status="banned")
    return provider


@pytest.fixture
def users() -> InMemoryUserDirectory:
    """Profiles for the leader and the first member."""
    directory = InMemoryUserDirectory()
    directory.set_user("leader-1", "Lead", avatar_url="lead.png")
    directory.set_user("member-1", "Mina")
    return directory


@pytest.fixture
def service(
    store: InMemoryVotingStore,
    memberships: InMemoryMembershipProvider,
    clock: FixedClock,
    users: InMemoryUserDirectory,
) -> VotingService:
    """Voting service wired to in-memory collaborators."""
    return VotingService(store=store, memberships=memberships, clock=clock, users=users)


@pytest.fixture
def voting_payload() -> Callable[..., VotingCreate]:
    """Factory for a manual voting: vote on day 1, consume from day 2 to day 9."""

    def build(**overrides: Any) -> VotingCreate:
        fields: dict[str, Any] = {
            "title": "Spring pick",
            "description": "Choose what we read next",
            "media_type": "manga",
            "candidate_submission_type": "manual",
            "voting_start_date": T0 + timedelta(days=1),
            "voting_end_date": T0 + timedelta(days=2),
            "consumption_start_date": T0 + timedelta(days=2),
            "consumption_end_date": T0 + timedelta(days=9),
        }
        fields.update(overrides)
        return VotingCreate(**fields)

    return build


@pytest.fixture
def suggestion_payload(voting_payload: Callable[..., VotingCreate]) -> Callable[..., VotingCreate]:
    """Factory for a member-suggestion voting with suggestions open during day 0."""

    def build(**overrides: Any) -> VotingCreate:
        fields: dict[str, Any] = {
            "candidate_submission_type": "member_suggestions",
            "suggestion_start_date": T0,
            "suggestion_end_date": T0 + timedelta(days=1),
            "voting_start_date": T0 + timedelta(days=1),
            "voting_end_date": T0 + timedelta(days=2),
        }
        fields.update(overrides)
        return voting_payload(**fields)

    return build


@pytest.fixture
def client(
    store: InMemoryVotingStore,
    memberships: InMemoryMembershipProvider,
    clock: FixedClock,
    users: InMemoryUserDirectory,
) -> Iterator[TestClient]:
    """Create a FastAPI test client; the caller id comes from the X-User-Id header."""
    from club_voting import dependencies
    from club_voting.main import app

    def _user_id(x_user_id: str = Header("anonymous")) -> str:
        return x_user_id

    app.dependency_overrides[dependencies.get_current_user_id] = _user_id
    app.dependency_overrides[dependencies.get_voting_store] = lambda: store
    app.dependency_overrides[dependencies.get_membership_provider] = lambda: memberships
    app.dependency_overrides[dependencies.get_clock] = lambda: clock
    app.dependency_overrides[dependencies.get_user_directory] = lambda: users
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
