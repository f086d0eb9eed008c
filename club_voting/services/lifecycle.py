"""Time-driven status transitions and winner resolution for votings.

Everything here is pure: functions take a voting (or club) plus ``now`` and
return new objects, never touching storage.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from club_voting.schemas.voting import (
    STATUS_ORDER,
    Candidate,
    ClubMedia,
    ClubVotings,
    Voting,
    VotingStatus,
    WinnerSnapshot,
)
from club_voting.utils.errors import InvalidStateTransitionError

logger = logging.getLogger(__name__)

STATUS_RANK = {status: rank for rank, status in enumerate(STATUS_ORDER)}
_PROMOTION_NAMESPACE = uuid.UUID("6f1c2a56-4b0e-4d59-9c55-3f3f0d8a7a21")


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of reconciling one voting against the clock."""

    voting: Voting
    changed: bool
    promotion: ClubMedia | None = None


def phase_status(voting: Voting, now: datetime) -> VotingStatus:
    """Return the status implied by the suggestion and voting windows.

    Reaching the voting window overrides the suggestion-phase checks.
    """
    status: VotingStatus = voting.status
    window = voting.suggestion_window
    if voting.uses_suggestions and window is not None:
        if window.contains(now):
            status = "suggestions_open"
        elif window.end <= now < voting.voting_window.start:
            status = "suggestions_closed"

    if voting.voting_window.contains(now):
        status = "voting_open"
    elif now >= voting.voting_window.end:
        status = "voting_closed"
    return status


def advance(current: VotingStatus, proposed: VotingStatus) -> VotingStatus:
    """Never move a voting back to an earlier phase."""
    if STATUS_RANK[proposed] < STATUS_RANK[current]:
        return current
    return proposed


def choose_winner(candidates: list[Candidate]) -> Candidate | None:
    """Pick the candidate with most votes; the earliest one wins ties."""
    champion: Candidate | None = None
    for candidate in candidates:
        if champion is None or candidate.vote_count > champion.vote_count:
            champion = candidate
    return champion


def promoted_media_type(voting: Voting) -> str:
    """Club media lists have no ``custom`` type; those votings promote as reading."""
    if voting.media_type == "custom":
        return "reading"
    return voting.media_type


def build_promotion(voting: Voting, winner: WinnerSnapshot) -> ClubMedia:
    """Create the club media entry for a voting's winner."""
    return ClubMedia(
        id=str(uuid.uuid5(_PROMOTION_NAMESPACE, voting.id)),
        media_id=winner.media_id,
        media_type=promoted_media_type(voting),
        title=winner.title,
        description=winner.description,
        start_date=voting.consumption_window.start,
        end_date=voting.consumption_window.end,
        is_active=True,
        added_by=voting.created_by,
        voting_id=voting.id,
    )


def resolve(voting: Voting, now: datetime, status: VotingStatus = "voting_closed") -> Reconciliation:
    """Close ``voting``, fix its winner and describe the media to promote.

    A winner snapshot that was already fixed is kept as-is.
    """
    resolved = voting.model_copy(deep=True)
    resolved.status = status
    resolved.is_active = False
    if resolved.completed_at is None:
        resolved.completed_at = now
    resolved.updated_at = now

    promotion = None
    if resolved.winner_candidate is None:
        champion = choose_winner(resolved.candidates)
        if champion is not None:
            resolved.winner_candidate = WinnerSnapshot.from_candidate(champion)
    if resolved.winner_candidate is not None:
        promotion = build_promotion(resolved, resolved.winner_candidate)

    logger.info(
        "Resolved voting %s as %s (winner=%s)",
        voting.id,
        status,
        resolved.winner_candidate.media_id if resolved.winner_candidate else None,
    )
    return Reconciliation(voting=resolved, changed=True, promotion=promotion)


def reconcile(voting: Voting, now: datetime) -> Reconciliation:
    """Bring ``voting`` up to date with ``now``.

    Idempotent: reconciling the result again at the same ``now`` reports
    ``changed=False``.
    """
    if voting.status == "completed":
        return Reconciliation(voting=voting, changed=False)

    if now >= voting.consumption_window.start and not voting.is_resolved:
        return resolve(voting, now)

    status = advance(voting.status, phase_status(voting, now))
    if status == voting.status:
        return Reconciliation(voting=voting, changed=False)

    logger.info("Voting %s moved %s -> %s", voting.id, voting.status, status)
    return Reconciliation(
        voting=voting.model_copy(update={"status": status, "updated_at": now}),
        changed=True,
    )


def complete(voting: Voting, now: datetime) -> Reconciliation:
    """Manually finish a voting: resolve it and mark it ``completed``."""
    if voting.status == "completed":
        raise InvalidStateTransitionError("Voting is already completed")
    return resolve(voting, now, status="completed")


def apply_promotion(club: ClubVotings, promotion: ClubMedia | None) -> bool:
    """Append ``promotion`` to the club media list unless the voting already promoted.

    Mutates ``club`` in place and returns True when an entry was appended.
    """
    if promotion is None or promotion.voting_id is None:
        return False
    if club.media_for_voting(promotion.voting_id) is not None:
        return False
    club.current_media.append(promotion)
    logger.info(
        "Promoted media %s to club %s from voting %s",
        promotion.media_id,
        club.club_id,
        promotion.voting_id,
    )
    return True


def reconcile_club(club: ClubVotings, now: datetime) -> tuple[ClubVotings, bool]:
    """Reconcile every voting in ``club`` and apply any resulting promotions."""
    updated = club.model_copy(deep=True)
    changed = False
    for voting_id, voting in club.votings.items():
        outcome = reconcile(voting, now)
        if not outcome.changed:
            continue
        updated.votings[voting_id] = outcome.voting
        apply_promotion(updated, outcome.promotion)
        changed = True
    if not changed:
        return club, False
    return updated, True
