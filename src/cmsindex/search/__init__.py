"""Search-engine index naming, mappings, lifecycle and storage."""

from .lifecycle import IndexManager
from .schema import IndexNaming, MappingBuilder, analyzer_for
from .store import DocumentStore, ElasticsearchStore, normalize_endpoint

__all__ = [
    "IndexManager",
    "IndexNaming",
    "MappingBuilder",
    "analyzer_for",
    "DocumentStore",
    "ElasticsearchStore",
    "normalize_endpoint",
]
