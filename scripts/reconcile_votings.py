"""Reconcile club votings on demand and report their status."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Apply due status transitions and winner promotions for clubs.",
    )
    parser.add_argument(
        "club_ids",
        nargs="+",
        help="One or more club ids to reconcile.",
    )
    parser.add_argument(
        "--include-inactive",
        action="store_true",
        help="Also list votings that are already resolved.",
    )
    parser.add_argument(
        "--at",
        default=None,
        help="Reconcile as of this past ISO-8601 instant instead of now.",
    )
    return parser.parse_args()


def reconcile_clubs(
    club_ids: Sequence[str],
    include_inactive: bool,
    at: datetime | None = None,
) -> list[str]:
    """Reconcile each club and return one report line per voting."""
    from club_voting.config import settings
    from club_voting.dependencies import (
        get_media_catalog,
        get_membership_provider,
        get_voting_store,
    )
    from club_voting.services.voting_service import VotingService
    from club_voting.utils.errors import AppError
    from club_voting.utils.time import FixedClock

    service = VotingService(
        store=get_voting_store(),
        memberships=get_membership_provider(),
        clock=FixedClock(at) if at is not None else None,
        catalog=get_media_catalog(),
        max_retries=settings.voting_save_max_retries,
    )

    lines: list[str] = []
    for club_id in club_ids:
        try:
            club = service.reconcile_club(club_id)
        except AppError as exc:
            lines.append(f"club {club_id}: {exc.code} {exc.message}")
            continue
        lines.append(f"club {club.club_id} (version {club.version})")
        for voting in club.votings.values():
            if not voting.is_active and not include_inactive:
                continue
            winner = voting.winner_candidate.title if voting.winner_candidate else "-"
            lines.append(f"  {voting.id} {voting.status:<18} winner={winner} {voting.title}")
    return lines


def main() -> None:
    """CLI entry point."""
    from club_voting.utils.time import now_utc, parse_iso_datetime

    args = parse_args()
    at = None
    if args.at:
        try:
            at = parse_iso_datetime(args.at)
        except ValueError as exc:
            raise SystemExit(f"Invalid --at value: {exc}") from exc
        if at > now_utc():
            raise SystemExit("--at must not be in the future")
    for line in reconcile_clubs(args.club_ids, args.include_inactive, at):
        print(line)


if __name__ == "__main__":
    main()
