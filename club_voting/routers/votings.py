"""Club media voting endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from club_voting.dependencies import get_current_user_id, get_voting_service
from club_voting.schemas.voting import (
    CandidateCreate,
    CompletionResponse,
    VoteResponse,
    VotingCreate,
    VotingEdit,
)
from club_voting.services.voting_service import VotingService

router = APIRouter()


@router.get("")
def list_votings(
    club_id: str,
    active: bool = Query(True),
    _: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Return the club's active (or past) votings."""
    votings = service.list_votings(club_id, active=active)
    return {"votings": service.describe_votings(votings)}


@router.get("/{voting_id}")
def get_voting(
    club_id: str,
    voting_id: str,
    _: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Return one voting."""
    voting = service.get_voting(club_id, voting_id)
    return {"voting": service.describe_votings([voting])[0]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_voting(
    club_id: str,
    payload: VotingCreate,
    testing_mode: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Create a media voting."""
    voting = service.create_voting(club_id, user_id, payload, testing_mode=testing_mode)
    return {"voting": voting.model_dump(mode="json")}


@router.put("/{voting_id}")
def edit_voting(
    club_id: str,
    voting_id: str,
    payload: VotingEdit,
    testing_mode: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Edit a media voting."""
    voting = service.edit_voting(club_id, voting_id, user_id, payload, testing_mode=testing_mode)
    return {"voting": voting.model_dump(mode="json")}


@router.delete("/{voting_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_voting(
    club_id: str,
    voting_id: str,
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> Response:
    """Delete a media voting."""
    service.delete_voting(club_id, voting_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{voting_id}/candidates", status_code=status.HTTP_201_CREATED)
def add_candidate(
    club_id: str,
    voting_id: str,
    payload: CandidateCreate,
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Add a candidate manually or as a member suggestion."""
    voting = service.add_candidate(club_id, voting_id, user_id, payload)
    candidate = voting.candidates[-1]
    return {
        "voting": voting.model_dump(mode="json"),
        "candidate": candidate.model_dump(mode="json"),
    }


@router.post("/{voting_id}/finalize")
def finalize_voting(
    club_id: str,
    voting_id: str,
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Confirm the candidate list."""
    voting = service.finalize_voting(club_id, voting_id, user_id)
    return {"voting": voting.model_dump(mode="json"), "status": voting.status}


@router.post("/{voting_id}/candidates/{candidate_index}/vote")
def vote_for_candidate(
    club_id: str,
    voting_id: str,
    candidate_index: int,
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Cast the caller's vote."""
    voting = service.cast_vote(club_id, voting_id, user_id, candidate_index)
    return VoteResponse(voting=voting, candidate_index=candidate_index).model_dump(mode="json")


@router.post("/{voting_id}/complete")
def complete_voting(
    club_id: str,
    voting_id: str,
    user_id: str = Depends(get_current_user_id),
    service: VotingService = Depends(get_voting_service),
) -> dict:
    """Close the voting now and promote its winner."""
    voting, winner = service.complete_voting(club_id, voting_id, user_id)
    return CompletionResponse(voting=voting, winner=winner).model_dump(mode="json")
