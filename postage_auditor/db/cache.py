"""Persistent cache of enriched listing records."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from postage_auditor.core.models import EnrichedItemRecord, Money

from .models import EnrichedItemDB
from .session import session_scope

logger = logging.getLogger(__name__)

# Stay well below SQLite's bound-parameter limit
_CHUNK_SIZE = 500


def _chunks(item_ids: list[str]) -> Iterable[list[str]]:
    for i in range(0, len(item_ids), _CHUNK_SIZE):
        yield item_ids[i : i + _CHUNK_SIZE]


class EnrichmentCache:
    """Key-value store of EnrichedItemRecord with a per-call TTL.

    Each method runs in its own session so workers can write concurrently.
    """

    def get_batch(
        self,
        item_ids: Iterable[str],
        ttl: timedelta,
        now: datetime | None = None,
    ) -> dict[str, EnrichedItemRecord]:
        """Return fresh records for the given ids; absent or expired ids are omitted."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}

        cutoff = (now or datetime.now()) - ttl
        records: dict[str, EnrichedItemRecord] = {}
        with session_scope() as session:
            for chunk in _chunks(ids):
                rows = session.execute(
                    select(EnrichedItemDB).where(
                        EnrichedItemDB.item_id.in_(chunk),
                        EnrichedItemDB.resolved_at > cutoff,
                    )
                ).scalars()
                for row in rows:
                    records[row.item_id] = self._db_to_record(row)
        return records

    def put(self, record: EnrichedItemRecord) -> None:
        """Insert or wholesale replace the row for ``record.item_id``."""
        values = {
            "item_id": record.item_id,
            "brand": record.brand,
            "country_of_origin": record.country_of_origin,
            "shipping_cost": str(record.shipping_cost.amount) if record.shipping_cost else "",
            "shipping_currency": record.shipping_cost.currency if record.shipping_cost else "",
            "images_json": json.dumps(record.images),
            "resolved_at": record.resolved_at,
        }
        stmt = sqlite_insert(EnrichedItemDB).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[EnrichedItemDB.item_id],
            set_={k: v for k, v in values.items() if k != "item_id"},
        )
        with session_scope() as session:
            session.execute(stmt)

    def delete_batch(self, item_ids: Iterable[str]) -> int:
        """Remove rows for a full refresh. Returns the number deleted."""
        ids = list(dict.fromkeys(item_ids))
        deleted = 0
        with session_scope() as session:
            for chunk in _chunks(ids):
                result = session.execute(delete(EnrichedItemDB).where(EnrichedItemDB.item_id.in_(chunk)))
                deleted += result.rowcount or 0
        if deleted:
            logger.info(f"Dropped {deleted} cached enrichment records")
        return deleted

    def _db_to_record(self, db: EnrichedItemDB) -> EnrichedItemRecord:
        try:
            images = json.loads(db.images_json or "[]")
        except ValueError:
            logger.warning(f"Discarding unreadable image list for {db.item_id}")
            images = []
        return EnrichedItemRecord(
            item_id=db.item_id,
            brand=db.brand or "",
            country_of_origin=db.country_of_origin or "",
            shipping_cost=Money.parse(db.shipping_cost, db.shipping_currency),
            images=list(images),
            resolved_at=db.resolved_at,
        )
