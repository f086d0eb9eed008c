"""Club media voting commands: reconcile, authorize, mutate, persist."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from club_voting.schemas.voting import (
    CandidateCreate,
    ClubVotings,
    Membership,
    Voting,
    VotingCreate,
    VotingEdit,
    WinnerSnapshot,
)
from club_voting.services import lifecycle, role_gate, voting_aggregate
from club_voting.services.common import map_users_on_field
from club_voting.services.media_catalog import MediaCatalog, NullMediaCatalog
from club_voting.services.membership import MembershipProvider
from club_voting.services.user_directory import NullUserDirectory, UserDirectory
from club_voting.services.voting_store import VotingStore
from club_voting.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    VersionConflictError,
)
from club_voting.utils.time import Clock, SystemClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VotingService:
    """Run voting commands against a club aggregate.

    Every command reconciles the club against the clock first, persisting any
    resulting transition, and then applies its own change under the club's
    optimistic version check, retrying from a fresh load on conflict.
    """

    def __init__(
        self,
        store: VotingStore,
        memberships: MembershipProvider,
        clock: Clock | None = None,
        catalog: MediaCatalog | None = None,
        max_retries: int = 3,
        allow_testing_mode: bool = True,
        late_edit_max_past_days: int = 365,
        users: UserDirectory | None = None,
    ) -> None:
        self.store = store
        self.memberships = memberships
        self.clock = clock or SystemClock()
        self.catalog = catalog or NullMediaCatalog()
        self.max_retries = max(1, max_retries)
        self.allow_testing_mode = allow_testing_mode
        self.late_edit_max_past_days = late_edit_max_past_days
        self.users = users or NullUserDirectory()

    def _members(self, club_id: str, user_id: str) -> list[Membership]:
        membership = self.memberships.get_membership(club_id, user_id)
        return [membership] if membership else []

    def _load_reconciled(self, club_id: str, now: datetime) -> ClubVotings:
        """Load the club and persist any transitions due at ``now``."""
        for _attempt in range(self.max_retries):
            club = self.store.load_club(club_id)
            reconciled, changed = lifecycle.reconcile_club(club, now)
            if not changed:
                return club
            try:
                return self.store.save_club(reconciled, expected_version=club.version)
            except VersionConflictError:
                logger.warning("Reconciliation of club %s lost a race, reloading", club_id)
        raise ConflictError("Club is being modified concurrently, please retry")

    def _mutate(
        self,
        club_id: str,
        action: str,
        apply: Callable[[ClubVotings, datetime], T],
    ) -> tuple[ClubVotings, T]:
        """Apply ``apply`` to a fresh, reconciled copy of the club and save it.

        ``apply`` mutates the club it is given and raises AppError subclasses
        for rule violations. It is re-run from scratch after a version conflict.
        """
        for attempt in range(1, self.max_retries + 1):
            now = self.clock.now()
            club = self._load_reconciled(club_id, now)
            working = club.model_copy(deep=True)
            result = apply(working, now)
            try:
                saved = self.store.save_club(working, expected_version=club.version)
            except VersionConflictError:
                logger.warning(
                    "%s on club %s conflicted (attempt %s/%s)",
                    action,
                    club_id,
                    attempt,
                    self.max_retries,
                )
                continue
            return saved, result
        raise ConflictError(f"Could not {action} after {self.max_retries} attempts, please retry")

    @staticmethod
    def _voting(club: ClubVotings, voting_id: str) -> Voting:
        voting = club.find_voting(voting_id)
        if voting is None:
            raise NotFoundError("Voting")
        return voting

    def _check_testing_mode(self, testing_mode: bool) -> None:
        if testing_mode and not self.allow_testing_mode:
            raise InvalidInputError("Testing mode is disabled")

    def reconcile_club(self, club_id: str) -> ClubVotings:
        """Bring every voting of a club up to date and return the club."""
        return self._load_reconciled(club_id, self.clock.now())

    def list_votings(self, club_id: str, active: bool = True) -> list[Voting]:
        """Return the club's votings whose ``is_active`` flag equals ``active``."""
        club = self.reconcile_club(club_id)
        return [voting for voting in club.votings.values() if voting.is_active == active]

    def get_voting(self, club_id: str, voting_id: str) -> Voting:
        """Return one reconciled voting."""
        return self._voting(self.reconcile_club(club_id), voting_id)

    def describe_votings(self, votings: list[Voting]) -> list[dict[str, Any]]:
        """Serialize votings with creator and candidate-adder profiles attached.

        Profile lookup is best-effort: on failure the ids are left undecorated.
        """
        payloads = [voting.model_dump(mode="json") for voting in votings]
        user_ids = {payload["created_by"] for payload in payloads}
        user_ids.update(
            candidate["added_by"] for payload in payloads for candidate in payload["candidates"]
        )
        try:
            users = self.users.get_users(user_ids)
        except Exception:
            logger.warning("User lookup failed for %s users", len(user_ids), exc_info=True)
            users = {}

        described = map_users_on_field(
            payloads, users, user_key="created_by", out_key="created_by_user"
        )
        for payload in described:
            payload["candidates"] = map_users_on_field(
                payload["candidates"], users, user_key="added_by", out_key="added_by_user"
            )
        return described

    def create_voting(
        self,
        club_id: str,
        user_id: str,
        payload: VotingCreate,
        testing_mode: bool = False,
    ) -> Voting:
        """Create a voting (leaders and moderators)."""
        self._check_testing_mode(testing_mode)
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> str:
            role_gate.ensure_can_manage(
                members, user_id, "Only leaders and moderators can create votings"
            )
            voting = voting_aggregate.create_voting(
                payload,
                club_id=club.club_id,
                created_by=user_id,
                now=now,
                testing_mode=testing_mode,
            )
            outcome = lifecycle.reconcile(voting, now)
            club.votings[voting.id] = outcome.voting
            lifecycle.apply_promotion(club, outcome.promotion)
            return voting.id

        saved, voting_id = self._mutate(club_id, "create voting", apply)
        logger.info("Voting %s created in club %s by %s", voting_id, club_id, user_id)
        return saved.votings[voting_id]

    def edit_voting(
        self,
        club_id: str,
        voting_id: str,
        user_id: str,
        payload: VotingEdit,
        testing_mode: bool = False,
    ) -> Voting:
        """Edit a voting (leaders and moderators)."""
        self._check_testing_mode(testing_mode)
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            role_gate.ensure_can_manage(
                members, user_id, "Only leaders and moderators can edit votings"
            )
            club.votings[voting_id] = voting_aggregate.edit_voting(
                voting,
                payload,
                now,
                testing_mode=testing_mode,
                late_edit_max_past_days=self.late_edit_max_past_days,
            )

        saved, _ = self._mutate(club_id, "edit voting", apply)
        return saved.votings[voting_id]

    def delete_voting(self, club_id: str, voting_id: str, user_id: str) -> None:
        """Delete a voting that has not reached its ballot yet."""
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            voting_aggregate.ensure_deletable(voting, role_gate.active_role(members, user_id))
            del club.votings[voting_id]

        self._mutate(club_id, "delete voting", apply)
        logger.info("Voting %s deleted from club %s by %s", voting_id, club_id, user_id)

    def _enrich(self, payload: CandidateCreate) -> CandidateCreate:
        """Fill missing display fields from the catalog; failures are ignored."""
        if not payload.media_id:
            return payload
        try:
            entry = self.catalog.lookup(payload.media_id)
        except Exception:
            logger.warning("Media catalog lookup failed for %s", payload.media_id, exc_info=True)
            return payload
        if entry is None:
            return payload
        return payload.model_copy(
            update={
                "title": payload.title or entry.title,
                "description": payload.description or entry.description,
                "image": payload.image or entry.image,
                "is_adult": payload.is_adult or entry.is_adult,
            }
        )

    def add_candidate(
        self,
        club_id: str,
        voting_id: str,
        user_id: str,
        payload: CandidateCreate,
    ) -> Voting:
        """Nominate a candidate for a voting."""
        members = self._members(club_id, user_id)
        candidate = self._enrich(payload)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            if not role_gate.can_suggest(members, user_id):
                raise ForbiddenError("Only active club members can add candidates")
            club.votings[voting_id] = voting_aggregate.add_candidate(
                voting,
                candidate,
                user_id,
                role_gate.active_role(members, user_id),
                now,
            )

        saved, _ = self._mutate(club_id, "add candidate", apply)
        return saved.votings[voting_id]

    def finalize_voting(self, club_id: str, voting_id: str, user_id: str) -> Voting:
        """Confirm a voting's candidate list (leaders and moderators)."""
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            role_gate.ensure_can_manage(
                members, user_id, "Only leaders and moderators can finalize votings"
            )
            club.votings[voting_id] = voting_aggregate.finalize_voting(voting, now)

        saved, _ = self._mutate(club_id, "finalize voting", apply)
        return saved.votings[voting_id]

    def cast_vote(
        self,
        club_id: str,
        voting_id: str,
        user_id: str,
        candidate_index: int,
    ) -> Voting:
        """Record the member's single vote for the candidate at ``candidate_index``."""
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            role_gate.ensure_can_vote(members, user_id, "Only active club members can vote")
            club.votings[voting_id] = voting_aggregate.cast_vote(
                voting, candidate_index, user_id, now
            )

        saved, _ = self._mutate(club_id, "cast vote", apply)
        return saved.votings[voting_id]

    def complete_voting(
        self,
        club_id: str,
        voting_id: str,
        user_id: str,
    ) -> tuple[Voting, WinnerSnapshot | None]:
        """Close a voting now, promote its winner and mark it completed."""
        members = self._members(club_id, user_id)

        def apply(club: ClubVotings, now: datetime) -> None:
            voting = self._voting(club, voting_id)
            role_gate.ensure_can_manage(
                members, user_id, "Only leaders and moderators can complete votings"
            )
            outcome = lifecycle.complete(voting, now)
            club.votings[voting_id] = outcome.voting
            lifecycle.apply_promotion(club, outcome.promotion)

        saved, _ = self._mutate(club_id, "complete voting", apply)
        voting = saved.votings[voting_id]
        return voting, voting.winner_candidate
