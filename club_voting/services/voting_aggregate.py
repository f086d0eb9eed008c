"""Validation and mutation rules for a single voting."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from club_voting.schemas.voting import (
    Candidate,
    CandidateCreate,
    TimeWindow,
    Voting,
    VotingCreate,
    VotingEdit,
)
from club_voting.services.lifecycle import phase_status
from club_voting.services.role_gate import MANAGER_ROLES
from club_voting.utils.errors import (
    DuplicateCandidateError,
    DuplicateVoteError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateTransitionError,
    NotFoundError,
)

EDITABLE_STATUSES = frozenset({"setup", "suggestions_closed", "voting_closed", "completed"})
LATE_STAGE_STATUSES = frozenset({"voting_closed", "completed"})
DELETABLE_STATUSES = frozenset({"setup", "suggestions_closed"})
FINALIZABLE_STATUSES = frozenset({"setup", "suggestions_closed"})


@dataclass(frozen=True)
class VotingFields:
    """Validated, normalized voting configuration."""

    title: str
    description: str | None
    media_type: str
    custom_media_type: str | None
    candidate_submission_type: str
    suggestion_window: TimeWindow | None
    voting_window: TimeWindow
    consumption_window: TimeWindow


def _window(start: datetime | None, end: datetime | None, label: str) -> TimeWindow:
    if start is None or end is None:
        raise InvalidInputError(f"{label} start and end dates are required")
    if start >= end:
        raise InvalidInputError(f"{label} end date must be after start date")
    return TimeWindow(start=start, end=end)


def validate_fields(
    payload: VotingCreate,
    now: datetime,
    testing_mode: bool,
) -> VotingFields:
    """Check window ordering and required fields for a full voting definition."""
    title = payload.title.strip()
    if not title:
        raise InvalidInputError("Title is required")

    custom_media_type = None
    if payload.media_type == "custom":
        custom_media_type = (payload.custom_media_type or "").strip()
        if not custom_media_type:
            raise InvalidInputError("Custom media type is required when media type is custom")

    voting_window = _window(payload.voting_start_date, payload.voting_end_date, "Voting")
    consumption_window = _window(
        payload.consumption_start_date, payload.consumption_end_date, "Consumption"
    )
    if voting_window.end > consumption_window.start:
        raise InvalidInputError("Consumption must start after voting ends")
    if not testing_mode and voting_window.start <= now:
        raise InvalidInputError("Voting start date must be in the future")

    suggestion_window = None
    if payload.candidate_submission_type == "member_suggestions":
        if payload.suggestion_start_date is None or payload.suggestion_end_date is None:
            raise InvalidInputError("Suggestion dates are required for member suggestions")
        suggestion_window = _window(
            payload.suggestion_start_date, payload.suggestion_end_date, "Suggestion"
        )
        if suggestion_window.end > voting_window.start:
            raise InvalidInputError("Suggestions must end before voting starts")
        if not testing_mode and suggestion_window.start <= now:
            raise InvalidInputError("Suggestion start date must be in the future")

    return VotingFields(
        title=title,
        description=payload.description,
        media_type=payload.media_type,
        custom_media_type=custom_media_type,
        candidate_submission_type=payload.candidate_submission_type,
        suggestion_window=suggestion_window,
        voting_window=voting_window,
        consumption_window=consumption_window,
    )


def create_voting(
    payload: VotingCreate,
    *,
    club_id: str,
    created_by: str,
    now: datetime,
    testing_mode: bool = False,
    voting_id: str | None = None,
) -> Voting:
    """Build a new voting with its initial phase status."""
    fields = validate_fields(payload, now, testing_mode)
    voting = Voting(
        id=voting_id or str(uuid.uuid4()),
        club_id=club_id,
        title=fields.title,
        description=fields.description,
        media_type=fields.media_type,
        custom_media_type=fields.custom_media_type,
        candidate_submission_type=fields.candidate_submission_type,
        suggestion_window=fields.suggestion_window,
        voting_window=fields.voting_window,
        consumption_window=fields.consumption_window,
        status="setup",
        is_active=True,
        created_by=str(created_by),
        created_at=now,
        updated_at=now,
    )
    voting.status = phase_status(voting, now)
    return voting


def _merge_edit(voting: Voting, payload: VotingEdit) -> VotingCreate:
    """Overlay the provided edit fields on the voting's current definition."""
    provided = payload.model_dump(exclude_unset=True)
    suggestion = voting.suggestion_window
    current = {
        "title": voting.title,
        "description": voting.description,
        "media_type": voting.media_type,
        "custom_media_type": voting.custom_media_type,
        "candidate_submission_type": voting.candidate_submission_type,
        "suggestion_start_date": suggestion.start if suggestion else None,
        "suggestion_end_date": suggestion.end if suggestion else None,
        "voting_start_date": voting.voting_window.start,
        "voting_end_date": voting.voting_window.end,
        "consumption_start_date": voting.consumption_window.start,
        "consumption_end_date": voting.consumption_window.end,
    }
    for key, value in provided.items():
        if value is not None or key in {"description", "custom_media_type"}:
            current[key] = value
    return VotingCreate.model_validate(current)


def _edit_consumption_only(
    voting: Voting,
    payload: VotingEdit,
    now: datetime,
    testing_mode: bool,
    late_edit_max_past_days: int,
) -> Voting:
    start = payload.consumption_start_date or voting.consumption_window.start
    end = payload.consumption_end_date or voting.consumption_window.end
    consumption_window = _window(start, end, "Consumption")
    if voting.voting_window.end > consumption_window.start:
        raise InvalidInputError("Consumption must start after voting ends")
    if not testing_mode and consumption_window.end < now - timedelta(days=late_edit_max_past_days):
        raise InvalidInputError(
            f"Consumption end date cannot be more than {late_edit_max_past_days} days in the past"
        )
    return voting.model_copy(
        update={"consumption_window": consumption_window, "updated_at": now},
        deep=True,
    )


def edit_voting(
    voting: Voting,
    payload: VotingEdit,
    now: datetime,
    testing_mode: bool = False,
    late_edit_max_past_days: int = 365,
) -> Voting:
    """Apply an edit.

    Closed and completed votings only accept a new consumption window; any
    other field in the payload is ignored for them.
    """
    if voting.status not in EDITABLE_STATUSES:
        raise InvalidStateTransitionError(
            "Can only edit votings that are in setup, suggestions_closed, "
            "voting_closed, or completed status"
        )

    if voting.status in LATE_STAGE_STATUSES:
        return _edit_consumption_only(
            voting, payload, now, testing_mode, late_edit_max_past_days
        )

    fields = validate_fields(_merge_edit(voting, payload), now, testing_mode)
    return voting.model_copy(
        update={
            "title": fields.title,
            "description": fields.description,
            "media_type": fields.media_type,
            "custom_media_type": fields.custom_media_type,
            "candidate_submission_type": fields.candidate_submission_type,
            "suggestion_window": fields.suggestion_window,
            "voting_window": fields.voting_window,
            "consumption_window": fields.consumption_window,
            "updated_at": now,
        },
        deep=True,
    )


def add_candidate(
    voting: Voting,
    payload: CandidateCreate,
    user_id: str,
    role: str | None,
    now: datetime,
) -> Voting:
    """Nominate a candidate, by a manager in manual mode or any member during suggestions."""
    if voting.uses_suggestions:
        window = voting.suggestion_window
        allowed = (
            voting.status == "suggestions_open" and window is not None and now <= window.end
        )
    else:
        if voting.status == "setup" and role not in MANAGER_ROLES:
            raise ForbiddenError("Only leaders and moderators can add candidates to this voting")
        allowed = voting.status == "setup"
    if not allowed:
        raise InvalidStateTransitionError("Cannot add candidates at this time")

    title = (payload.title or "").strip()
    if not title:
        raise InvalidInputError("Candidate title is required")

    media_id = payload.media_id or f"custom-{uuid.uuid4().hex}"
    if voting.has_candidate(media_id):
        raise DuplicateCandidateError(media_id)

    updated = voting.model_copy(deep=True)
    updated.candidates.append(
        Candidate(
            media_id=media_id,
            title=title,
            description=payload.description,
            image=payload.image,
            is_adult=payload.is_adult,
            added_by=str(user_id),
            added_at=now,
            votes=[],
        )
    )
    updated.updated_at = now
    return updated


def cast_vote(voting: Voting, candidate_index: int, user_id: str, now: datetime) -> Voting:
    """Record one vote; a member's vote can never be changed."""
    if voting.status != "voting_open":
        raise InvalidStateTransitionError(f"Voting is not currently open (status: {voting.status})")
    if now > voting.voting_window.end:
        raise InvalidStateTransitionError("Voting period has ended")
    if candidate_index < 0 or candidate_index >= len(voting.candidates):
        raise NotFoundError("Candidate")
    if voting.has_voted(str(user_id)):
        raise DuplicateVoteError()

    updated = voting.model_copy(deep=True)
    updated.candidates[candidate_index].votes.append(str(user_id))
    updated.updated_at = now
    return updated


def ensure_deletable(voting: Voting, role: str | None) -> None:
    """Only managers delete, and only before voting has begun."""
    if role not in MANAGER_ROLES:
        raise ForbiddenError("Only leaders and moderators can delete votings")
    if voting.status not in DELETABLE_STATUSES:
        raise InvalidStateTransitionError(
            "Can only delete votings that are in setup or suggestions_closed status"
        )


def finalize_voting(voting: Voting, now: datetime) -> Voting:
    """Confirm the candidate list and move the voting on to its next phase."""
    if voting.status not in FINALIZABLE_STATUSES:
        raise InvalidStateTransitionError("Voting cannot be finalized in current status")
    if not voting.candidates:
        raise InvalidStateTransitionError("At least one candidate is required")

    status = "setup"
    if voting.uses_suggestions:
        window = voting.suggestion_window
        if window is not None and now >= window.end:
            status = "suggestions_closed"
        else:
            status = "suggestions_open"
    if now >= voting.voting_window.start:
        status = "voting_open"

    return voting.model_copy(update={"status": status, "updated_at": now}, deep=True)
