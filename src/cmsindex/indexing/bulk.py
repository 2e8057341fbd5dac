"""Bulk reindexing over a bounded worker pool."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, Sequence

from cmsindex.content.models import IndexableItemDescriptor
from cmsindex.content.source import ContentSource
from cmsindex.errors import ValidationError
from cmsindex.search.lifecycle import IndexManager

from .models import BatchReport, OutcomeResult
from .orchestrator import Indexer

LOGGER = logging.getLogger(__name__)

REINDEX_MODES = ("reset", "all")

ResultCallback = Callable[[IndexableItemDescriptor, OutcomeResult], None]


def describe(descriptor: IndexableItemDescriptor) -> str:
    return f"{descriptor.kind.label} {descriptor.item_id} (site {descriptor.site_id})"


class BulkReindexer:
    """Reindex many items, preparing indexes strictly before any item runs."""

    def __init__(
        self,
        indexer: Indexer,
        index_manager: IndexManager,
        *,
        source: Optional[ContentSource] = None,
        max_workers: int = 4,
    ) -> None:
        """Initialize the reindexer.

        Args:
            indexer: Single-item indexer run for every descriptor.
            index_manager: Manager used to recreate or ensure indexes.
            source: Content source resolving descriptors.
            max_workers: Upper bound on concurrently indexed items.
        """

        self.indexer = indexer
        self.index_manager = index_manager
        self.source = source
        self.max_workers = max(1, max_workers)

    def run(
        self,
        descriptors: Iterable[IndexableItemDescriptor],
        *,
        mode: str = "reset",
        site_ids: Optional[Sequence[int]] = None,
        cancel_event: Optional[threading.Event] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> BatchReport:
        """Reindex ``descriptors``.

        Args:
            descriptors: Items to index.
            mode: ``reset`` recreates site indexes first; ``all`` only ensures they exist.
            site_ids: Sites whose indexes are prepared; defaults to the descriptors' sites.
            cancel_event: Event checked before each item starts.
            on_result: Callback invoked after each item completes.

        Returns:
            BatchReport: Tallies for every processed item.

        Raises:
            ValidationError: If ``mode`` is unknown.
            StorageError: If indexes cannot be prepared.
        """

        if mode not in REINDEX_MODES:
            raise ValidationError(f"Unknown reindex mode '{mode}'")
        items: List[IndexableItemDescriptor] = list(descriptors)
        sites = sorted(set(site_ids or ()) | {item.site_id for item in items})
        cancel_event = cancel_event or threading.Event()
        report = BatchReport(total=len(items))

        if mode == "reset":
            self.index_manager.recreate_sites(sites)
        else:
            for site_id in sites:
                self.index_manager.create_site(site_id)
        LOGGER.info(
            "Prepared indexes for sites %s (%s); indexing %d items", sites, mode, len(items)
        )

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="cmsindex"
        )
        with executor as pool:
            futures = {pool.submit(self._index_one, item, cancel_event): item for item in items}
            for future in as_completed(futures):
                descriptor = futures[future]
                result = future.result()
                if result is None:
                    continue
                report.record(result, label=describe(descriptor))
                if on_result is not None:
                    on_result(descriptor, result)

        report.cancelled = cancel_event.is_set() and report.processed < report.total
        if report.cancelled:
            LOGGER.warning("Reindex cancelled after %d of %d items", report.processed, report.total)
        return report

    def _index_one(
        self,
        descriptor: IndexableItemDescriptor,
        cancel_event: threading.Event,
    ) -> Optional[OutcomeResult]:
        if cancel_event.is_set():
            return None
        try:
            return self.indexer.index_descriptor(descriptor, self.source)
        except Exception as exc:
            LOGGER.warning("Failed to index %s: %s", describe(descriptor), exc)
            return self.indexer.reporter.failed(exc)


__all__ = ["BulkReindexer", "REINDEX_MODES", "describe"]
