"""Structured extraction of searchable text from an item's typed fields."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from cmsindex.config.models import ContentSettings
from cmsindex.content.models import ContentItem, FieldDescriptor, FieldLayout, FieldType
from cmsindex.hooks import (
    FieldExtractionContext,
    FieldTransformContext,
    HookEvent,
    HookRegistry,
)

from .text import html_to_text, looks_like_html, normalize_search_text

LOGGER = logging.getLogger(__name__)

_RELATION_KEYS = (
    "id",
    "title",
    "slug",
    "uri",
    "url",
    "filename",
    "kind",
    "alt",
    "username",
    "name",
    "email",
)


@dataclass(slots=True)
class FieldData:
    """Extracted data for one field.

    Attributes:
        handle: Field handle.
        name: Display name.
        field_type: Source field type.
        value: Structured, JSON-compatible value.
        keywords: Searchable text derived from the value.
        structured_type: Shape of ``value`` (text, relation, blocks, table, ...).
        searchable: Whether the field is flagged searchable.
    """

    handle: str
    name: str
    field_type: FieldType
    value: Any
    keywords: str = ""
    structured_type: str = "text"
    searchable: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "keywords": self.keywords,
            "field_type": self.field_type.value,
            "field_handle": self.handle,
            "field_name": self.name,
            "structured_type": self.structured_type,
            "searchable": self.searchable,
        }


@dataclass(slots=True)
class StructuredExtraction:
    """Result of walking an item's field layout.

    Attributes:
        fields: Extracted field data keyed by handle, in layout order.
        content: Title followed by every non-empty keyword string.
        has_field_content: Whether any field contributed keywords.
    """

    fields: Dict[str, Any] = field(default_factory=dict)
    content: str = ""
    has_field_content: bool = False


def keywords_of(data: Any) -> str:
    """Return the keyword string carried by a field entry."""
    if isinstance(data, FieldData):
        return data.keywords
    if isinstance(data, Mapping):
        return str(data.get("keywords") or "")
    return ""


def combine_content(title: str, fields: Mapping[str, Any]) -> tuple[str, bool]:
    """Join ``title`` and every non-empty keyword string with single spaces.

    Returns:
        tuple[str, bool]: Combined text and whether any field contributed.
    """

    parts: List[str] = []
    if title.strip():
        parts.append(title.strip())
    contributed = False
    for data in fields.values():
        keywords = keywords_of(data)
        if keywords:
            parts.append(keywords)
            contributed = True
    return " ".join(parts), contributed


def serialize_value(value: Any) -> Any:
    """Convert ``value`` into JSON-compatible data."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [serialize_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def extract_keywords(value: Any) -> str:
    """Flatten ``value`` into a whitespace-normalized keyword string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, str):
        return normalize_search_text(value)
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return _join(extract_keywords(item) for item in value.values())
    if isinstance(value, (list, tuple, set)):
        return _join(extract_keywords(item) for item in value)
    return normalize_search_text(str(value))


def _join(parts: Iterable[str]) -> str:
    return " ".join(part for part in parts if part)


class StructuredFieldExtractor:
    """Walk a field layout and derive searchable data per field."""

    def __init__(self, settings: ContentSettings, *, hooks: HookRegistry | None = None) -> None:
        self.settings = settings
        self.hooks = hooks or HookRegistry()

    def extract(
        self,
        item: ContentItem,
        layout: Optional[FieldLayout] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> StructuredExtraction:
        """Extract searchable fields of ``item``.

        Args:
            item: Item being indexed.
            layout: Field layout; defaults to ``item.field_layout``.
            values: Raw field values; defaults to ``item.field_values``.

        Returns:
            StructuredExtraction: Field data and combined content.
        """

        layout = layout if layout is not None else item.field_layout
        values = values if values is not None else item.field_values

        before = self.hooks.run(
            HookEvent.BEFORE_EXTRACT_FIELDS,
            FieldExtractionContext(item=item),
        )
        if before.skip_default:
            content, contributed = combine_content(item.title, before.fields)
            return StructuredExtraction(dict(before.fields), content, contributed)

        fields: Dict[str, Any] = dict(before.fields)
        if layout is not None:
            for index, descriptor in layout.roots():
                if not self._included(descriptor):
                    continue
                data = self._extract_guarded(item, layout, index, descriptor, values, depth=1)
                if data is not None:
                    fields[descriptor.handle] = data
        else:
            LOGGER.debug("No field layout for %s %s", item.kind.value, item.id)

        after = self.hooks.run(
            HookEvent.AFTER_EXTRACT_FIELDS,
            FieldExtractionContext(item=item, fields=fields),
        )
        content, contributed = combine_content(item.title, after.fields)
        return StructuredExtraction(dict(after.fields), content, contributed)

    def _included(self, descriptor: FieldDescriptor) -> bool:
        if descriptor.field_type.is_block:
            # Block fields decide per sub-field.
            return True
        return (
            descriptor.searchable
            or self.settings.include_non_searchable
            or descriptor.handle in self.settings.forced_fields
        )

    def _extract_guarded(
        self,
        item: ContentItem,
        layout: FieldLayout,
        index: int,
        descriptor: FieldDescriptor,
        values: Mapping[str, Any],
        *,
        depth: int,
    ) -> Optional[Any]:
        try:
            return self._extract_field(item, layout, index, descriptor, values, depth=depth)
        except Exception as exc:
            LOGGER.warning(
                "Failed to extract field %s from %s %s: %s",
                descriptor.handle,
                item.kind.value,
                item.id,
                exc,
            )
            return None

    def _extract_field(
        self,
        item: ContentItem,
        layout: FieldLayout,
        index: int,
        descriptor: FieldDescriptor,
        values: Mapping[str, Any],
        *,
        depth: int,
    ) -> Optional[Any]:
        raw = values.get(descriptor.handle)
        if raw is None:
            return None

        if descriptor.field_type.is_block:
            data = self._transform_blocks(item, layout, index, descriptor, raw, depth=depth)
        else:
            data = self._transform(descriptor, raw)
        if data is None:
            return None

        context = self.hooks.run(
            HookEvent.TRANSFORM_FIELD,
            FieldTransformContext(item=item, descriptor=descriptor, raw_value=raw, data=data),
        )
        return context.data

    def _transform(self, descriptor: FieldDescriptor, raw: Any) -> Optional[FieldData]:
        field_type = descriptor.field_type
        if field_type.is_relation:
            value, keywords = _relations(raw)
            structured = field_type.value
        elif field_type is FieldType.TABLE:
            value = _table(raw)
            keywords = extract_keywords(value)
            structured = "table"
        elif field_type in {FieldType.DATE, FieldType.TIME}:
            value = _iso(raw)
            keywords = value or ""
            structured = "datetime"
        elif field_type is FieldType.MONEY:
            value = _money(raw)
            keywords = _money_keywords(value)
            structured = "money"
        elif field_type is FieldType.COUNTRY:
            value = _country(raw)
            keywords = _country_keywords(value)
            structured = "country"
        elif field_type is FieldType.RICH_TEXT:
            text = str(raw)
            value = html_to_text(text) if looks_like_html(text) else normalize_search_text(text)
            keywords = value
            structured = "text"
        else:
            value = serialize_value(raw)
            keywords = extract_keywords(raw)
            structured = "text"
        if value is None or value == [] or value == "":
            return None
        return FieldData(
            handle=descriptor.handle,
            name=descriptor.name or descriptor.handle,
            field_type=field_type,
            value=value,
            keywords=normalize_search_text(keywords),
            structured_type=structured,
            searchable=descriptor.searchable,
        )

    def _transform_blocks(
        self,
        item: ContentItem,
        layout: FieldLayout,
        index: int,
        descriptor: FieldDescriptor,
        raw: Any,
        *,
        depth: int,
    ) -> Optional[FieldData]:
        if depth > self.settings.max_field_depth:
            LOGGER.debug(
                "Field %s exceeds max depth %d", descriptor.handle, self.settings.max_field_depth
            )
            return None
        if not isinstance(raw, (list, tuple)):
            return None

        blocks: List[Dict[str, Any]] = []
        keywords: List[str] = []
        for position, block in enumerate(raw):
            if not isinstance(block, Mapping):
                continue
            block_values = block.get("fields") or {}
            block_fields: Dict[str, Any] = {}
            for child_index, child in layout.children_of(index):
                # Only searchable sub-fields are walked inside blocks.
                if not (child.searchable or child.handle in self.settings.forced_fields):
                    continue
                data = self._extract_guarded(
                    item, layout, child_index, child, block_values, depth=depth + 1
                )
                if data is None:
                    continue
                payload = data.to_payload() if isinstance(data, FieldData) else data
                block_fields[child.handle] = payload
                sub_keywords = keywords_of(data)
                if sub_keywords:
                    keywords.append(sub_keywords)
            if block_fields:
                blocks.append(
                    {
                        "id": block.get("id", position),
                        "type": block.get("type"),
                        "fields": block_fields,
                    }
                )
        if not blocks:
            return None
        return FieldData(
            handle=descriptor.handle,
            name=descriptor.name or descriptor.handle,
            field_type=descriptor.field_type,
            value=blocks,
            keywords=" ".join(keywords),
            structured_type="blocks",
            searchable=descriptor.searchable,
        )


def _relations(raw: Any) -> tuple[List[Dict[str, Any]], str]:
    entries = raw if isinstance(raw, (list, tuple)) else [raw]
    related: List[Dict[str, Any]] = []
    titles: List[str] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            record = {key: serialize_value(entry[key]) for key in _RELATION_KEYS if key in entry}
            label = entry.get("title") or entry.get("name") or entry.get("username")
            if label:
                titles.append(normalize_search_text(str(label)))
        elif isinstance(entry, int) and not isinstance(entry, bool):
            record = {"id": entry}
        else:
            continue
        related.append(record)
    return related, _join(titles)


def _table(raw: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw, (list, tuple)):
        return None
    rows: List[Dict[str, Any]] = []
    for row in raw:
        if isinstance(row, Mapping):
            rows.append(
                {
                    str(column): serialize_value(cell)
                    for column, cell in row.items()
                    if not isinstance(cell, (datetime, date))
                }
            )
        elif isinstance(row, (list, tuple)):
            rows.append(
                {f"col{position + 1}": serialize_value(cell) for position, cell in enumerate(row)}
            )
    return rows


def _iso(raw: Any) -> Optional[str]:
    if isinstance(raw, (datetime, date, time)):
        return raw.isoformat()
    if isinstance(raw, str) and raw.strip():
        candidate = raw.strip()
        try:
            return datetime.fromisoformat(candidate.replace("Z", "+00:00")).isoformat()
        except ValueError:
            return candidate
    return None


def _money(raw: Any) -> Optional[Dict[str, Any]]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, Mapping):
        amount = raw.get("amount", raw.get("value"))
        if amount is None or amount == "":
            return None
        money: Dict[str, Any] = {
            "amount": str(amount),
            "currency": str(raw.get("currency") or "USD"),
        }
        if raw.get("formatted"):
            money["formatted"] = str(raw["formatted"])
        return money
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        return {"amount": str(raw), "currency": "USD"}
    if isinstance(raw, str):
        try:
            Decimal(raw)
        except ArithmeticError:
            return None
        return {"amount": raw, "currency": "USD"}
    return None


def _money_keywords(money: Optional[Dict[str, Any]]) -> str:
    if not money:
        return ""
    return money.get("formatted") or f"{money['amount']} {money['currency']}"


def _country(raw: Any) -> Optional[Dict[str, str]]:
    if isinstance(raw, Mapping):
        code = str(raw.get("code") or "").strip()
        if not code:
            return None
        return {"code": code, "label": str(raw.get("label") or raw.get("name") or code)}
    if isinstance(raw, str) and raw.strip():
        return {"code": raw.strip(), "label": raw.strip()}
    return None


def _country_keywords(country: Optional[Dict[str, str]]) -> str:
    if not country:
        return ""
    if country["label"] == country["code"]:
        return country["code"]
    return f"{country['label']} {country['code']}"


__all__ = [
    "FieldData",
    "StructuredExtraction",
    "StructuredFieldExtractor",
    "combine_content",
    "extract_keywords",
    "serialize_value",
]
