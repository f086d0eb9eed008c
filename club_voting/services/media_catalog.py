"""Best-effort media metadata used to decorate candidates."""

from __future__ import annotations

from typing import Protocol

from club_voting.schemas.voting import CatalogEntry
from club_voting.services.common import SupabaseService
from supabase import Client

MEDIA_COLUMNS = "content_id,title_english,title_romaji,title_native,description,cover_image,is_adult"


class MediaCatalog(Protocol):
    """Lookup of display metadata by catalog key."""

    def lookup(self, media_id: str) -> CatalogEntry | None: ...


class NullMediaCatalog:
    """Catalog that knows nothing; used when enrichment is disabled."""

    def lookup(self, media_id: str) -> CatalogEntry | None:
        return None


class SupabaseMediaCatalog:
    """Read media metadata from the ``media`` table."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def lookup(self, media_id: str) -> CatalogEntry | None:
        rows = self.db.select_many(
            "media",
            filters={"content_id": media_id},
            columns=MEDIA_COLUMNS,
            limit=1,
        )
        if not rows:
            return None
        row = rows[0]
        title = row.get("title_english") or row.get("title_romaji") or row.get("title_native")
        return CatalogEntry(
            media_id=str(row["content_id"]),
            title=title,
            description=row.get("description"),
            image=row.get("cover_image"),
            is_adult=bool(row.get("is_adult")),
        )
