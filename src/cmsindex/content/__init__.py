"""CMS content models and sources."""

from .models import (
    ContentItem,
    FieldDescriptor,
    FieldLayout,
    FieldType,
    IndexableItemDescriptor,
    ItemKind,
)
from .source import ContentSource, ExportContentSource, resolve_descriptor

__all__ = [
    "ContentItem",
    "FieldDescriptor",
    "FieldLayout",
    "FieldType",
    "IndexableItemDescriptor",
    "ItemKind",
    "ContentSource",
    "ExportContentSource",
    "resolve_descriptor",
]
