"""Persistence of a club's votings with optimistic concurrency.

The whole club is the unit of versioning: every save names the version it
was computed from and is rejected if another writer got there first.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from club_voting.schemas.voting import ClubMedia, ClubVotings, Voting
from club_voting.services.common import SupabaseService
from club_voting.utils.errors import NotFoundError, VersionConflictError
from supabase import Client

logger = logging.getLogger(__name__)

CLUB_COLUMNS = "id,version,media_votings,current_media"


class VotingStore(ABC):
    """Load and save club voting aggregates."""

    @abstractmethod
    def load_club(self, club_id: str) -> ClubVotings:
        """Return the club's votings and media, or raise NotFoundError."""

    @abstractmethod
    def save_club(self, club: ClubVotings, expected_version: int) -> ClubVotings:
        """Persist ``club`` if the stored version still equals ``expected_version``.

        Returns the saved aggregate carrying its new version, or raises
        VersionConflictError.
        """

    def load_club_votings(self, club_id: str) -> list[Voting]:
        """Return the club's votings in creation order."""
        return list(self.load_club(club_id).votings.values())

    def save_voting(self, club_id: str, voting: Voting, expected_version: int) -> Voting:
        """Replace (or add) one voting under the club's version check."""
        club = self.load_club(club_id)
        if club.version != expected_version:
            raise VersionConflictError(club_id, expected_version)
        club.votings[voting.id] = voting
        saved = self.save_club(club, expected_version)
        return saved.votings[voting.id]


def club_to_row(club: ClubVotings) -> dict[str, Any]:
    """Serialize an aggregate into the ``clubs`` row shape."""
    return {
        "media_votings": [voting.model_dump(mode="json") for voting in club.votings.values()],
        "current_media": [media.model_dump(mode="json") for media in club.current_media],
    }


def club_from_row(row: dict[str, Any]) -> ClubVotings:
    """Build an aggregate from a ``clubs`` row."""
    votings = [Voting.model_validate(item) for item in row.get("media_votings") or []]
    return ClubVotings(
        club_id=str(row["id"]),
        version=int(row.get("version") or 1),
        votings={voting.id: voting for voting in votings},
        current_media=[ClubMedia.model_validate(item) for item in row.get("current_media") or []],
    )


class SupabaseVotingStore(VotingStore):
    """Store votings as JSON columns on the ``clubs`` table."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def load_club(self, club_id: str) -> ClubVotings:
        row = self.db.select_one(
            "clubs",
            {"id": club_id},
            columns=CLUB_COLUMNS,
            not_found_label="Club",
        )
        return club_from_row(row)

    def save_club(self, club: ClubVotings, expected_version: int) -> ClubVotings:
        payload = club_to_row(club)
        payload["version"] = expected_version + 1
        rows = self.db.update(
            "clubs",
            {"id": club.club_id, "version": expected_version},
            payload,
        )
        if not rows:
            logger.warning(
                "Version conflict saving club %s at version %s", club.club_id, expected_version
            )
            raise VersionConflictError(club.club_id, expected_version)
        return club_from_row(rows[0])


class InMemoryVotingStore(VotingStore):
    """Process-local store for development and tests.

    Aggregates are kept serialized so callers never share mutable state.
    """

    def __init__(self) -> None:
        self._clubs: dict[str, tuple[int, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def create_club(self, club_id: str) -> ClubVotings:
        """Register an empty club."""
        club = ClubVotings(club_id=str(club_id), version=1)
        with self._lock:
            self._clubs[club.club_id] = (club.version, club.model_dump(mode="json"))
        return club

    def load_club(self, club_id: str) -> ClubVotings:
        with self._lock:
            entry = self._clubs.get(str(club_id))
        if entry is None:
            raise NotFoundError("Club")
        return ClubVotings.model_validate(entry[1])

    def save_club(self, club: ClubVotings, expected_version: int) -> ClubVotings:
        with self._lock:
            entry = self._clubs.get(club.club_id)
            if entry is None:
                raise NotFoundError("Club")
            if entry[0] != expected_version:
                logger.warning(
                    "Version conflict saving club %s at version %s (current %s)",
                    club.club_id,
                    expected_version,
                    entry[0],
                )
                raise VersionConflictError(club.club_id, expected_version)
            saved = club.model_copy(update={"version": expected_version + 1}, deep=True)
            self._clubs[club.club_id] = (saved.version, saved.model_dump(mode="json"))
        return ClubVotings.model_validate(saved.model_dump(mode="json"))
