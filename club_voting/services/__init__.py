"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "InMemoryMembershipProvider": "club_voting.services.membership",
    "InMemoryUserDirectory": "club_voting.services.user_directory",
    "InMemoryVotingStore": "club_voting.services.voting_store",
    "MediaCatalog": "club_voting.services.media_catalog",
    "MembershipProvider": "club_voting.services.membership",
    "NullMediaCatalog": "club_voting.services.media_catalog",
    "NullUserDirectory": "club_voting.services.user_directory",
    "SupabaseMediaCatalog": "club_voting.services.media_catalog",
    "SupabaseMembershipProvider": "club_voting.services.membership",
    "SupabaseService": "club_voting.services.common",
    "SupabaseUserDirectory": "club_voting.services.user_directory",
    "SupabaseVotingStore": "club_voting.services.voting_store",
    "VotingService": "club_voting.services.voting_service",
    "VotingStore": "club_voting.services.voting_store",
    "UserDirectory": "club_voting.services.user_directory",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
