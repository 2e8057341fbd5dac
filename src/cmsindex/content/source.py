"""Content source contract and an export-file backed implementation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol, Sequence

import yaml
from pydantic import ValidationError as PydanticValidationError

from cmsindex.errors import ValidationError

from .models import ContentItem, FieldLayout, IndexableItemDescriptor, ItemKind

LOGGER = logging.getLogger(__name__)


class ContentSource(Protocol):
    """Read access to CMS content consumed by the indexing pipeline."""

    def get_item(self, kind: ItemKind, item_id: int, site_id: int) -> Optional[ContentItem]:
        """Return the item or None when it does not exist in ``site_id``."""
        ...

    def field_layout(self, item: ContentItem) -> Optional[FieldLayout]:
        """Return the field layout tree for ``item``."""
        ...

    def field_value(self, item: ContentItem, handle: str) -> Any:
        """Return the raw value of field ``handle`` on ``item``."""
        ...

    def iter_descriptors(
        self,
        site_ids: Optional[Sequence[int]] = None,
        kinds: Optional[Sequence[ItemKind]] = None,
    ) -> Iterator[IndexableItemDescriptor]:
        """Yield descriptors for every item matching the filters."""
        ...


class ExportContentSource:
    """Serve content items loaded from a YAML or JSON export.

    The export is either a list of item mappings or a mapping with an
    ``items`` list. ``field_layout`` may be given in nested tree form
    (``{handle, type, searchable, fields}``) and is converted to an arena.
    """

    def __init__(self, items: Iterable[ContentItem]) -> None:
        self._items: dict[tuple[ItemKind, int, int], ContentItem] = {}
        for item in items:
            self._items[(item.kind, item.id, item.site_id)] = item

    @classmethod
    def from_file(cls, path: Path) -> "ExportContentSource":
        """Load items from ``path``.

        Raises:
            ValidationError: If the file cannot be parsed or an item is malformed.
        """
        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() == ".json":
                raw = json.loads(text)
            else:
                raw = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValidationError(f"Unable to parse export file {path}: {exc}") from exc
        return cls.from_records(raw)

    @classmethod
    def from_records(cls, raw: Any) -> "ExportContentSource":
        """Build a source from already-parsed export data."""
        if isinstance(raw, Mapping):
            raw = raw.get("items", [])
        if not isinstance(raw, list):
            raise ValidationError("Export data must be a list of items or a mapping with 'items'.")
        items = []
        for position, record in enumerate(raw):
            try:
                items.append(_parse_item(record))
            except (PydanticValidationError, KeyError, TypeError) as exc:
                raise ValidationError(f"Invalid item at position {position}: {exc}") from exc
        LOGGER.debug("Loaded %d content items from export.", len(items))
        return cls(items)

    def __len__(self) -> int:
        return len(self._items)

    def get_item(self, kind: ItemKind, item_id: int, site_id: int) -> Optional[ContentItem]:
        return self._items.get((ItemKind(kind), item_id, site_id))

    def field_layout(self, item: ContentItem) -> Optional[FieldLayout]:
        return item.field_layout

    def field_value(self, item: ContentItem, handle: str) -> Any:
        return item.field_values.get(handle)

    def iter_descriptors(
        self,
        site_ids: Optional[Sequence[int]] = None,
        kinds: Optional[Sequence[ItemKind]] = None,
    ) -> Iterator[IndexableItemDescriptor]:
        for (kind, item_id, site_id), _item in sorted(
            self._items.items(), key=lambda pair: (pair[0][2], pair[0][0].value, pair[0][1])
        ):
            if site_ids and site_id not in site_ids:
                continue
            if kinds and kind not in kinds:
                continue
            yield IndexableItemDescriptor(item_id=item_id, site_id=site_id, kind=kind)


def _parse_item(record: Mapping[str, Any]) -> ContentItem:
    data = dict(record)
    layout = data.get("field_layout")
    if isinstance(layout, list):
        data["field_layout"] = FieldLayout.from_tree(layout)
    return ContentItem.model_validate(data)


def resolve_descriptor(source: ContentSource, descriptor: IndexableItemDescriptor) -> ContentItem:
    """Fetch the full item referenced by ``descriptor``.

    Raises:
        ValidationError: If the item no longer exists.
    """
    item = source.get_item(descriptor.kind, descriptor.item_id, descriptor.site_id)
    if item is None:
        raise ValidationError(
            f"{descriptor.kind.label} {descriptor.item_id} not found in site {descriptor.site_id}"
        )
    return item


__all__ = ["ContentSource", "ExportContentSource", "resolve_descriptor"]
