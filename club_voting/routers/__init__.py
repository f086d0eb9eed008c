"""API router package."""

from club_voting.routers import votings

__all__ = ["votings"]
