"""Voting store optimistic concurrency tests."""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest
from postgrest import APIError

from club_voting.schemas.voting import ClubVotings, VotingCreate
from club_voting.services.membership import InMemoryMembershipProvider
from club_voting.services.user_directory import SupabaseUserDirectory
from club_voting.services.voting_aggregate import create_voting
from club_voting.services.voting_service import VotingService
from club_voting.services.voting_store import (
    InMemoryVotingStore,
    SupabaseVotingStore,
    club_from_row,
    club_to_row,
)
from club_voting.utils.errors import DataAccessError, NotFoundError, VersionConflictError
from club_voting.utils.time import FixedClock
from conftest import CLUB_ID, T0


class FakeQuery:
    """Minimal PostgREST query builder over an in-memory table."""

    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.filters: dict[str, Any] = {}
        self.members: dict[str, list[Any]] = {}
        self.payload: dict[str, Any] | None = None

    def select(self, _columns: str) -> FakeQuery:
        return self

    def update(self, payload: dict[str, Any]) -> FakeQuery:
        self.payload = payload
        return self

    def eq(self, key: str, value: Any) -> FakeQuery:
        self.filters[key] = value
        return self

    def in_(self, key: str, values: list[Any]) -> FakeQuery:
        self.members[key] = list(values)
        return self

    def limit(self, _count: int) -> FakeQuery:
        return self

    def execute(self) -> SimpleNamespace:
        matched = [
            row
            for row in self.rows
            if all(row.get(key) == value for key, value in self.filters.items())
            and all(row.get(key) in values for key, values in self.members.items())
        ]
        if self.payload is not None:
            for row in matched:
                row.update(self.payload)
        return SimpleNamespace(data=[dict(row) for row in matched])


class UnreachableQuery(FakeQuery):
    """Query whose execution fails like a dropped database connection."""

    def execute(self) -> SimpleNamespace:
        raise APIError({"message": "connection to server lost", "code": "08006"})


class UnreachableClient:
    def table(self, _name: str) -> FakeQuery:
        return UnreachableQuery([])


class FakeClient:
    """Supabase client stand-in exposing ``table()``."""

    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows

    def table(self, _name: str) -> FakeQuery:
        return FakeQuery(self.rows)


def _club_with_voting(voting_payload: Callable[..., VotingCreate]) -> ClubVotings:
    voting = create_voting(voting_payload(), club_id=CLUB_ID, created_by="leader-1", now=T0)
    return ClubVotings(club_id=CLUB_ID, version=1, votings={voting.id: voting})


def test_in_memory_save_bumps_version(
    store: InMemoryVotingStore,
    voting_payload: Callable[..., VotingCreate],
) -> None:
    """A save at the current version succeeds and increments it."""
    club = _club_with_voting(voting_payload)
    saved = store.save_club(club, expected_version=1)
    assert saved.version == 2
    assert store.load_club(CLUB_ID).votings.keys() == club.votings.keys()


def test_in_memory_rejects_stale_version(
    store: InMemoryVotingStore,
    voting_payload: Callable[..., VotingCreate],
) -> None:
    """The second writer computed from the same version loses."""
    first = store.load_club(CLUB_ID)
    second = store.load_club(CLUB_ID)

    store.save_club(_club_with_voting(voting_payload), expected_version=first.version)
    with pytest.raises(VersionConflictError):
        store.save_club(second, expected_version=second.version)

    assert len(store.load_club(CLUB_ID).votings) == 1


def test_in_memory_returns_copies(
    store: InMemoryVotingStore,
    voting_payload: Callable[..., VotingCreate],
) -> None:
    """Mutating a loaded aggregate does not leak into the store."""
    store.save_club(_club_with_voting(voting_payload), expected_version=1)
    loaded = store.load_club(CLUB_ID)
    next(iter(loaded.votings.values())).title = "changed"
    assert next(iter(store.load_club(CLUB_ID).votings.values())).title == "Spring pick"


def test_unknown_club(store: InMemoryVotingStore) -> None:
    """Loading a missing club is NotFound."""
    with pytest.raises(NotFoundError):
        store.load_club("missing")


def test_save_voting_checks_version(
    store: InMemoryVotingStore,
    voting_payload: Callable[..., VotingCreate],
) -> None:
    """save_voting replaces one voting under the club version."""
    club = store.save_club(_club_with_voting(voting_payload), expected_version=1)
    voting = next(iter(club.votings.values())).model_copy(update={"title": "Renamed"})

    saved = store.save_voting(CLUB_ID, voting, expected_version=club.version)
    assert saved.title == "Renamed"
    assert store.load_club_votings(CLUB_ID)[0].title == "Renamed"

    with pytest.raises(VersionConflictError):
        store.save_voting(CLUB_ID, voting, expected_version=club.version)


def test_row_round_trip(voting_payload: Callable[..., VotingCreate]) -> None:
    """The clubs row shape carries votings and media as JSON."""
    club = _club_with_voting(voting_payload)
    row = {"id": CLUB_ID, "version": 4, **club_to_row(club)}
    restored = club_from_row(row)
    assert restored.version == 4
    assert restored.votings == club.votings


def test_supabase_store_conditional_update(voting_payload: Callable[..., VotingCreate]) -> None:
    """Supabase saves filter on the expected version and fail when it moved."""
    rows = [{"id": CLUB_ID, "version": 1, "media_votings": [], "current_media": []}]
    store = SupabaseVotingStore(FakeClient(rows))

    club = store.load_club(CLUB_ID)
    assert club.version == 1 and club.votings == {}

    saved = store.save_club(_club_with_voting(voting_payload), expected_version=1)
    assert saved.version == 2
    assert rows[0]["version"] == 2
    assert len(rows[0]["media_votings"]) == 1

    with pytest.raises(VersionConflictError):
        store.save_club(club, expected_version=1)


def test_supabase_store_missing_club() -> None:
    """A missing row is reported as a missing club."""
    store = SupabaseVotingStore(FakeClient([]))
    with pytest.raises(NotFoundError) as excinfo:
        store.load_club(CLUB_ID)
    assert excinfo.value.message == "Club not found"


def test_database_failure_is_not_reported_as_bad_input(
    memberships: InMemoryMembershipProvider,
) -> None:
    """An unreachable database surfaces as a 503 data access error."""
    store = SupabaseVotingStore(UnreachableClient())
    with pytest.raises(DataAccessError) as excinfo:
        store.load_club(CLUB_ID)
    assert excinfo.value.status_code == 503
    assert excinfo.value.code == "DATABASE_ERROR"
    assert excinfo.value.message == "connection to server lost"

    service = VotingService(store=store, memberships=memberships, clock=FixedClock(T0))
    with pytest.raises(DataAccessError):
        service.get_voting(CLUB_ID, "any")


def test_supabase_user_directory_reads_users_table() -> None:
    """Profiles are fetched in one ``in`` query and keyed by id."""
    rows = [
        {"id": "dir-user-1", "username": "Uma", "avatar_url": "uma.png"},
        {"id": "dir-user-2", "username": "Ivo", "avatar_url": None},
    ]
    directory = SupabaseUserDirectory(FakeClient(rows))

    users = directory.get_users(["dir-user-1", "dir-user-3"])
    assert users == {"dir-user-1": rows[0]}
    assert directory.get_users([]) == {}
