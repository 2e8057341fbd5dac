"""Single-item indexing and removal."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from cmsindex.content.models import ContentItem, IndexableItemDescriptor, ItemKind
from cmsindex.content.source import ContentSource, resolve_descriptor
from cmsindex.errors import ValidationError
from cmsindex.hooks import HookEvent, HookRegistry, IndexItemContext
from cmsindex.search.schema import IndexNaming
from cmsindex.search.store import DocumentStore

from .acquisition import AcquisitionOutput, ContentAcquisitionEngine
from .assembler import DocumentAssembler
from .eligibility import EligibilityClassifier
from .models import OutcomeResult
from .outcomes import OutcomeReporter

LOGGER = logging.getLogger(__name__)


def document_id_for(item_id: int, site_id: int) -> str:
    """Return the deterministic document id for an item in a site."""
    return f"{item_id}_{site_id}"


class Indexer:
    """Sequence eligibility, acquisition, assembly and storage for one item.

    Every collaborator is injected. Each call rebuilds the document from
    scratch and replaces the stored version; nothing is retried.
    """

    def __init__(
        self,
        classifier: EligibilityClassifier,
        acquisition: ContentAcquisitionEngine,
        assembler: DocumentAssembler,
        naming: IndexNaming,
        store: DocumentStore,
        reporter: OutcomeReporter,
        *,
        hooks: HookRegistry | None = None,
        source: Optional[ContentSource] = None,
    ) -> None:
        self.classifier = classifier
        self.acquisition = acquisition
        self.assembler = assembler
        self.naming = naming
        self.store = store
        self.reporter = reporter
        self.hooks = hooks or HookRegistry()
        self.source = source

    def index_item(self, item: ContentItem) -> OutcomeResult:
        """Index ``item`` and classify the attempt.

        Args:
            item: Item to index in its own site.

        Returns:
            OutcomeResult: Skipped/Disabled without touching the store,
            otherwise Success, Partial or Failed.

        Raises:
            ValidationError: If the item or site id is not positive.
        """

        if item.id <= 0 or item.site_id <= 0:
            raise ValidationError(f"Invalid item or site id: {item.id}, {item.site_id}")

        decision = self.classifier.classify(item)
        if not decision.indexable:
            LOGGER.info(
                "Not indexing %s %s in site %s: %s",
                item.kind.value,
                item.id,
                item.site_id,
                decision.explain(),
            )
            return self.reporter.ineligible(decision)

        index_name = self.naming.index_name(item.site_id, item.kind)
        document_id = document_id_for(item.id, item.site_id)
        acquisition: Optional[AcquisitionOutput] = None
        try:
            acquisition = self.acquisition.acquire(item)
            document = self.assembler.assemble(item, acquisition)
            context = self.hooks.run(
                HookEvent.BEFORE_INDEX_ITEM,
                IndexItemContext(
                    item=item,
                    document=document,
                    index_name=index_name,
                    document_id=document_id,
                ),
            )
            if context.skip_default:
                return self.reporter.handled_by_hook(document_id=document_id, index_name=index_name)
            self.store.upsert(context.index_name, context.document_id, context.document)
        except Exception as exc:
            LOGGER.error(
                "Failed to index %s %s in site %s",
                item.kind.value,
                item.id,
                item.site_id,
                exc_info=exc,
            )
            return self.reporter.failed(
                exc,
                document_id=document_id,
                index_name=index_name,
                acquisition=acquisition,
            )

        self.hooks.run(HookEvent.AFTER_INDEX_ITEM, context)
        LOGGER.info("Indexed %s %s in %s", item.kind.value, item.id, context.index_name)
        return self.reporter.stored(
            acquisition,
            document_id=context.document_id,
            index_name=context.index_name,
        )

    def index_descriptor(
        self,
        descriptor: IndexableItemDescriptor,
        source: Optional[ContentSource] = None,
    ) -> OutcomeResult:
        """Resolve ``descriptor`` through the content source and index it.

        Raises:
            ValidationError: If no source is available or the item does not exist.
        """

        source = source or self.source
        if source is None:
            raise ValidationError("No content source available to resolve items.")
        return self.index_item(resolve_descriptor(source, descriptor))

    def remove_item(self, item_id: int, kind: ItemKind, site_ids: Iterable[int]) -> int:
        """Delete the documents of an item from each site's index.

        Args:
            item_id: Item identifier.
            kind: Item kind, selecting the target index.
            site_ids: Sites the item is removed from.

        Returns:
            int: Number of documents actually deleted.

        Raises:
            ValidationError: If ``item_id`` or a site id is not positive.
            StorageError: If the store fails.
        """

        if item_id <= 0:
            raise ValidationError(f"Invalid item id: {item_id}")
        kind = ItemKind(kind)
        sites = list(site_ids)
        if any(site_id <= 0 for site_id in sites):
            raise ValidationError(f"Invalid site ids: {sites}")

        removed = 0
        for site_id in sites:
            context = self.hooks.run(
                HookEvent.BEFORE_REMOVE_ITEM,
                IndexItemContext(
                    index_name=self.naming.index_name(site_id, kind),
                    document_id=document_id_for(item_id, site_id),
                ),
            )
            if context.skip_default:
                continue
            if self.store.delete(context.index_name, context.document_id):
                removed += 1
                LOGGER.info("Removed %s %s from %s", kind.value, item_id, context.index_name)
            self.hooks.run(HookEvent.AFTER_REMOVE_ITEM, context)
        return removed


__all__ = ["Indexer", "document_id_for"]
