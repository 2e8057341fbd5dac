"""Composition root wiring pipeline components from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from cmsindex.config.models import IndexerConfig
from cmsindex.content.source import ContentSource
from cmsindex.hooks import HookRegistry, load_optional_callable
from cmsindex.indexing.acquisition import ContentAcquisitionEngine
from cmsindex.indexing.assembler import Clock, DocumentAssembler, extra_fields_from_settings
from cmsindex.indexing.bulk import BulkReindexer
from cmsindex.indexing.eligibility import EligibilityClassifier
from cmsindex.indexing.fetch import FrontendFetcher
from cmsindex.indexing.fields import StructuredFieldExtractor
from cmsindex.indexing.orchestrator import Indexer
from cmsindex.indexing.outcomes import OutcomeReporter
from cmsindex.indexing.safety import Resolver, UrlSafetyPolicy
from cmsindex.search.lifecycle import IndexManager
from cmsindex.search.schema import IndexNaming, MappingBuilder
from cmsindex.search.store import DocumentStore, ElasticsearchStore


@dataclass(slots=True)
class Services:
    """Wired pipeline components sharing one configuration snapshot."""

    config: IndexerConfig
    hooks: HookRegistry
    store: DocumentStore
    naming: IndexNaming
    mappings: MappingBuilder
    index_manager: IndexManager
    indexer: Indexer
    bulk: BulkReindexer
    source: Optional[ContentSource] = None


def build_services(
    config: IndexerConfig,
    *,
    store: Optional[DocumentStore] = None,
    source: Optional[ContentSource] = None,
    hooks: Optional[HookRegistry] = None,
    session: Optional[requests.Session] = None,
    resolver: Optional[Resolver] = None,
    clock: Optional[Clock] = None,
) -> Services:
    """Build every pipeline component from ``config``.

    Args:
        config: Effective configuration.
        store: Document store; an Elasticsearch store from ``config.connection`` when omitted.
        source: Content source resolving descriptors and field values.
        hooks: Hook registry shared by all components.
        session: HTTP session used by frontend fetches.
        resolver: DNS resolver used by URL safety checks.
        clock: Clock stamping ``indexed_at``.

    Returns:
        Services: Components ready for indexing and index management.
    """

    hooks = hooks or HookRegistry()
    store = store if store is not None else ElasticsearchStore.from_settings(config.connection)
    extra_fields = extra_fields_from_settings(config.extra_fields)

    naming = IndexNaming(config.index)
    mappings = MappingBuilder(
        naming,
        sites=config.sites,
        enabled_kinds=config.eligibility.enabled_kinds,
        content_field_name=config.content.content_field_name,
        store_field_data=config.content.store_field_data,
        extra_fields=extra_fields,
    )
    index_manager = IndexManager(naming, mappings, store, hooks=hooks)

    fetch_settings = config.frontend_fetch
    fetcher = FrontendFetcher(
        fetch_settings,
        hooks=hooks,
        session=session,
        safety=UrlSafetyPolicy(
            blocked_hosts=fetch_settings.blocked_hosts,
            resolve_hostnames=fetch_settings.resolve_hostnames,
            resolver=resolver,
        ),
        content_callback=load_optional_callable(
            config.content.content_callback, context="content callback"
        ),
        extractor_callback=load_optional_callable(
            config.content.extractor_callback, context="extractor callback"
        ),
    )
    acquisition = ContentAcquisitionEngine(
        config.content,
        fetch_settings,
        extractor=StructuredFieldExtractor(config.content, hooks=hooks),
        fetcher=fetcher,
        source=source,
    )
    indexer = Indexer(
        EligibilityClassifier(config.eligibility),
        acquisition,
        DocumentAssembler(config.content, extra_fields=extra_fields, clock=clock),
        naming,
        store,
        OutcomeReporter(debug=fetch_settings.debug),
        hooks=hooks,
        source=source,
    )
    bulk = BulkReindexer(
        indexer,
        index_manager,
        source=source,
        max_workers=config.bulk.max_workers,
    )
    return Services(
        config=config,
        hooks=hooks,
        store=store,
        naming=naming,
        mappings=mappings,
        index_manager=index_manager,
        indexer=indexer,
        bulk=bulk,
        source=source,
    )


__all__ = ["Services", "build_services"]
