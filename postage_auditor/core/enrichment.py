"""Batch enrichment of listing ids with a bounded worker pool."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta

from postage_auditor.api.ebay import UnauthorizedError

from .models import EnrichmentResult

logger = logging.getLogger(__name__)


class EnrichmentAuthError(Exception):
    """Raised when the upstream rejects the token; no partial results are returned."""

    pass


class EnrichmentOrchestrator:
    """Serve enrichment from the cache and fetch misses concurrently.

    ``reader`` must provide ``resolve(item_id, cancel_event=None)`` and
    ``cache`` must provide ``get_batch``, ``put`` and ``delete_batch``.
    """

    def __init__(
        self,
        reader,
        cache,
        max_workers: int = 30,
        default_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.reader = reader
        self.cache = cache
        self.max_workers = max_workers
        self.default_ttl = default_ttl

    def enrich(
        self,
        item_ids: Iterable[str],
        concurrency_limit: int | None = None,
        ttl: timedelta | None = None,
        force_refresh: bool = False,
    ) -> dict[str, EnrichmentResult]:
        """Resolve every id, returning one result per distinct id.

        Raises:
            EnrichmentAuthError: the token was rejected during the call
            ValueError: concurrency_limit below 1
        """
        limit = self.max_workers if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        ttl = self.default_ttl if ttl is None else ttl

        ids = normalize_item_ids(item_ids)
        if not ids:
            return {}

        if force_refresh:
            self.cache.delete_batch(ids)
            cached = {}
        else:
            cached = self.cache.get_batch(ids, ttl)

        results = {
            item_id: EnrichmentResult.resolved(record, from_cache=True)
            for item_id, record in cached.items()
        }
        to_fetch = [item_id for item_id in ids if item_id not in cached]
        logger.info(
            f"Enriching {len(ids)} items: {len(cached)} cached, {len(to_fetch)} to fetch "
            f"(concurrency {limit})"
        )

        if to_fetch:
            results.update(self._fetch(to_fetch, limit))

        failed = sum(1 for r in results.values() if not r.is_resolved)
        if failed:
            logger.warning(f"{failed} of {len(ids)} items could not be enriched")
        return {item_id: results[item_id] for item_id in ids if item_id in results}

    def get_cached(self, item_ids: Iterable[str], ttl: timedelta) -> dict[str, EnrichmentResult]:
        """Cache-only read; ids without a fresh record are omitted."""
        ids = normalize_item_ids(item_ids)
        return {
            item_id: EnrichmentResult.resolved(record, from_cache=True)
            for item_id, record in self.cache.get_batch(ids, ttl).items()
        }

    def _fetch(self, item_ids: list[str], limit: int) -> dict[str, EnrichmentResult]:
        cancel_event = threading.Event()
        lock = threading.Lock()
        fetched: dict[str, EnrichmentResult] = {}

        with ThreadPoolExecutor(
            max_workers=min(limit, len(item_ids)), thread_name_prefix="enrich"
        ) as executor:
            futures = {
                executor.submit(self._resolve_one, item_id, cancel_event, fetched, lock): item_id
                for item_id in item_ids
            }
            for future in as_completed(futures):
                try:
                    future.result()
                except UnauthorizedError as e:
                    cancel_event.set()
                    for pending in futures:
                        pending.cancel()
                    logger.error(f"Enrichment aborted, token rejected: {e}")
                    raise EnrichmentAuthError(str(e)) from e

        return fetched

    def _resolve_one(
        self,
        item_id: str,
        cancel_event: threading.Event,
        fetched: dict[str, EnrichmentResult],
        lock: threading.Lock,
    ) -> None:
        try:
            record = self.reader.resolve(item_id, cancel_event=cancel_event)
        except UnauthorizedError:
            raise
        except Exception as e:
            if not cancel_event.is_set():
                logger.warning(f"Failed to enrich {item_id}: {e}")
            result = EnrichmentResult.failed(item_id, str(e))
        else:
            try:
                self.cache.put(record)
            except Exception as e:
                logger.exception(f"Failed to cache enrichment for {item_id}")
                result = EnrichmentResult.failed(item_id, f"cache write failed: {e}")
            else:
                result = EnrichmentResult.resolved(record)

        with lock:
            fetched[item_id] = result


def normalize_item_ids(item_ids: Iterable[str]) -> list[str]:
    """Trim, drop blanks and de-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(str(i).strip() for i in item_ids if i is not None and str(i).strip()))
