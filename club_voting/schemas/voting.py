"""Club media voting schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from club_voting.utils.time import ensure_aware

MediaType = Literal["anime", "manga", "reading", "vn", "video", "movie", "custom"]
ClubMediaType = Literal["anime", "manga", "reading", "vn", "video", "movie"]
SubmissionType = Literal["manual", "member_suggestions"]
VotingStatus = Literal[
    "setup",
    "suggestions_open",
    "suggestions_closed",
    "voting_open",
    "voting_closed",
    "completed",
]
MemberRole = Literal["leader", "moderator", "member"]
MemberStatus = Literal["active", "pending", "banned"]

STATUS_ORDER: tuple[str, ...] = (
    "setup",
    "suggestions_open",
    "suggestions_closed",
    "voting_open",
    "voting_closed",
    "completed",
)


class TimeWindow(BaseModel):
    """Half-open ``[start, end)`` period."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class Candidate(BaseModel):
    """A nominated media item and the ids of the members who voted for it."""

    media_id: str
    title: str
    description: str | None = None
    image: str | None = None
    is_adult: bool = False
    added_by: str
    added_at: datetime | None = None
    votes: list[str] = Field(default_factory=list)

    @property
    def vote_count(self) -> int:
        return len(self.votes)


class WinnerSnapshot(BaseModel):
    """Winning candidate fields frozen at resolution time."""

    model_config = ConfigDict(frozen=True)

    media_id: str
    title: str
    description: str | None = None
    image: str | None = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> WinnerSnapshot:
        return cls(
            media_id=candidate.media_id,
            title=candidate.title or "Untitled Media",
            description=candidate.description,
            image=candidate.image,
        )


class Voting(BaseModel):
    """One media-selection round owned by a club."""

    id: str
    club_id: str
    title: str
    description: str | None = None
    media_type: MediaType
    custom_media_type: str | None = None
    candidate_submission_type: SubmissionType
    suggestion_window: TimeWindow | None = None
    voting_window: TimeWindow
    consumption_window: TimeWindow
    status: VotingStatus = "setup"
    is_active: bool = True
    candidates: list[Candidate] = Field(default_factory=list)
    winner_candidate: WinnerSnapshot | None = None
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def uses_suggestions(self) -> bool:
        return self.candidate_submission_type == "member_suggestions"

    @property
    def is_resolved(self) -> bool:
        """True once the winner has been resolved (automatically or manually)."""
        return self.completed_at is not None

    def has_voted(self, user_id: str) -> bool:
        return any(user_id in candidate.votes for candidate in self.candidates)

    def has_candidate(self, media_id: str) -> bool:
        return any(candidate.media_id == media_id for candidate in self.candidates)


class ClubMedia(BaseModel):
    """Entry in a club's active media list."""

    id: str
    media_id: str
    media_type: ClubMediaType
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    added_by: str
    voting_id: str | None = None


class ClubVotings(BaseModel):
    """The club aggregate slice this service owns: votings plus active media.

    ``version`` is the optimistic-concurrency token for the whole club.
    """

    club_id: str
    version: int = 1
    votings: dict[str, Voting] = Field(default_factory=dict)
    current_media: list[ClubMedia] = Field(default_factory=list)

    def find_voting(self, voting_id: str) -> Voting | None:
        return self.votings.get(voting_id)

    def media_for_voting(self, voting_id: str) -> ClubMedia | None:
        for media in self.current_media:
            if media.voting_id == voting_id:
                return media
        return None


class Membership(BaseModel):
    """A member's role and status within one club."""

    user_id: str
    role: MemberRole = "member"
    status: MemberStatus = "active"


class CatalogEntry(BaseModel):
    """Display metadata returned by the media catalog."""

    media_id: str
    title: str | None = None
    description: str | None = None
    image: str | None = None
    is_adult: bool = False


class VotingCreate(BaseModel):
    """Request body for creating a voting."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    media_type: MediaType
    custom_media_type: str | None = Field(None, max_length=50)
    candidate_submission_type: SubmissionType
    suggestion_start_date: datetime | None = None
    suggestion_end_date: datetime | None = None
    voting_start_date: datetime
    voting_end_date: datetime
    consumption_start_date: datetime
    consumption_end_date: datetime

    @field_validator(
        "suggestion_start_date",
        "suggestion_end_date",
        "voting_start_date",
        "voting_end_date",
        "consumption_start_date",
        "consumption_end_date",
    )
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None


class VotingEdit(BaseModel):
    """Request body for editing a voting.

    Omitted fields keep their current value.
    """

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    media_type: MediaType | None = None
    custom_media_type: str | None = Field(None, max_length=50)
    candidate_submission_type: SubmissionType | None = None
    suggestion_start_date: datetime | None = None
    suggestion_end_date: datetime | None = None
    voting_start_date: datetime | None = None
    voting_end_date: datetime | None = None
    consumption_start_date: datetime | None = None
    consumption_end_date: datetime | None = None

    @field_validator(
        "suggestion_start_date",
        "suggestion_end_date",
        "voting_start_date",
        "voting_end_date",
        "consumption_start_date",
        "consumption_end_date",
    )
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None


class CandidateCreate(BaseModel):
    """Request body for nominating a candidate."""

    media_id: str | None = Field(None, min_length=1)
    title: str | None = Field(None, max_length=300)
    description: str | None = None
    image: str | None = None
    is_adult: bool = False


class VoteResponse(BaseModel):
    """Result of a cast vote."""

    voting: Voting
    candidate_index: int


class CompletionResponse(BaseModel):
    """Result of manually completing a voting."""

    voting: Voting
    winner: WinnerSnapshot | None = None
