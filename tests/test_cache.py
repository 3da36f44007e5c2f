"""Tests for the SQLite enrichment cache."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

from postage_auditor.core.models import EnrichedItemRecord, Money
from postage_auditor.db.cache import EnrichmentCache


class TestEnrichmentCache:
    """Tests for EnrichmentCache."""

    def test_put_and_get(self, temp_db, sample_record) -> None:
        cache = EnrichmentCache()
        cache.put(sample_record)

        records = cache.get_batch([sample_record.item_id], timedelta(hours=1))

        record = records[sample_record.item_id]
        assert record.brand == "Camilla Franks"
        assert record.country_of_origin == "India"
        assert record.shipping_cost == Money(Decimal("150.00"), "AUD")
        assert record.images == sample_record.images

    def test_missing_ids_omitted(self, temp_db, sample_record) -> None:
        cache = EnrichmentCache()
        cache.put(sample_record)
        assert set(cache.get_batch([sample_record.item_id, "nope"], timedelta(hours=1))) == {
            sample_record.item_id
        }

    def test_expired_entries_omitted(self, temp_db) -> None:
        cache = EnrichmentCache()
        cache.put(EnrichedItemRecord(item_id="old", resolved_at=datetime.now() - timedelta(hours=25)))
        cache.put(EnrichedItemRecord(item_id="new", resolved_at=datetime.now() - timedelta(hours=1)))

        assert set(cache.get_batch(["old", "new"], timedelta(hours=24))) == {"new"}

    def test_ttl_measured_from_now(self, temp_db) -> None:
        cache = EnrichmentCache()
        resolved = datetime(2025, 1, 1, 12, 0)
        cache.put(EnrichedItemRecord(item_id="1", resolved_at=resolved))

        ttl = timedelta(minutes=60)
        assert cache.get_batch(["1"], ttl, now=resolved + timedelta(minutes=59))
        assert not cache.get_batch(["1"], ttl, now=resolved + timedelta(minutes=61))

    def test_put_replaces_wholesale(self, temp_db, sample_record) -> None:
        cache = EnrichmentCache()
        cache.put(sample_record)
        cache.put(EnrichedItemRecord(item_id=sample_record.item_id, brand="Aje"))

        record = cache.get_batch([sample_record.item_id], timedelta(hours=1))[sample_record.item_id]
        assert record.brand == "Aje"
        assert record.country_of_origin == ""
        assert record.shipping_cost is None
        assert record.images == []

    def test_delete_batch(self, temp_db, sample_record) -> None:
        cache = EnrichmentCache()
        cache.put(sample_record)

        assert cache.delete_batch([sample_record.item_id, "absent"]) == 1
        assert cache.get_batch([sample_record.item_id], timedelta(hours=1)) == {}

    def test_empty_input(self, temp_db) -> None:
        assert EnrichmentCache().get_batch([], timedelta(hours=1)) == {}

    def test_survives_reconnect(self, temp_db, sample_record) -> None:
        import postage_auditor.db.session as session_module

        EnrichmentCache().put(sample_record)
        session_module.close_database()

        with patch("postage_auditor.db.session.get_db_path", return_value=temp_db):
            records = EnrichmentCache().get_batch([sample_record.item_id], timedelta(hours=1))
        assert sample_record.item_id in records
