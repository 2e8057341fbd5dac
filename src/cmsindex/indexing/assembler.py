"""Assembly of search documents from items and acquired content."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from cmsindex.config.models import ContentSettings, ExtraFieldSettings
from cmsindex.content.models import ContentItem, ItemKind
from cmsindex.errors import ConfigurationError
from cmsindex.hooks import load_callable, safe_call

from .acquisition import AcquisitionOutput
from .fields import FieldData, serialize_value

LOGGER = logging.getLogger(__name__)

TYPE_FIELDS: Dict[ItemKind, tuple[str, ...]] = {
    ItemKind.ENTRY: ("post_date", "expiry_date"),
    ItemKind.ASSET: ("filename", "kind", "size", "width", "height"),
    ItemKind.CATEGORY: ("level", "lft", "rgt"),
    ItemKind.PRODUCT: ("price", "sale_price", "sku", "stock", "weight"),
    ItemKind.DIGITAL_PRODUCT: ("price", "sku"),
}

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ExtraField:
    """Operator-declared document field.

    Attributes:
        name: Document field name.
        resolver: Callable ``(item) -> value``; takes precedence over ``value``.
        value: Static value used without a resolver.
        mapping: Mapping hint for the index schema; ``keyword`` when omitted.
    """

    name: str
    resolver: Optional[Callable[[ContentItem], Any]] = None
    value: Any = None
    mapping: Optional[Dict[str, Any]] = None

    def resolve(self, item: ContentItem) -> Any:
        """Return the field value for ``item``; None when it should be omitted."""
        if self.resolver is None:
            return self.value
        return safe_call(self.resolver, item, context=f"extra field '{self.name}'", default=None)


def extra_fields_from_settings(settings: Mapping[str, ExtraFieldSettings]) -> List[ExtraField]:
    """Build extra fields from configuration, skipping unloadable resolvers.

    Args:
        settings: Extra field settings keyed by field name.

    Returns:
        List[ExtraField]: Usable extra fields in configuration order.
    """

    fields: List[ExtraField] = []
    for name, entry in settings.items():
        resolver = None
        if entry.resolver:
            try:
                resolver = load_callable(entry.resolver)
            except ConfigurationError as exc:
                LOGGER.warning("Skipping extra field '%s': %s", name, exc)
                continue
        fields.append(
            ExtraField(name=name, resolver=resolver, value=entry.value, mapping=entry.mapping)
        )
    return fields


class DocumentAssembler:
    """Build the field map stored for one item in one site."""

    def __init__(
        self,
        settings: ContentSettings,
        *,
        extra_fields: Iterable[ExtraField] = (),
        clock: Clock | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            settings: Content settings naming the content field.
            extra_fields: Operator-declared fields applied after type fields.
            clock: Source of the ``indexed_at`` timestamp.
        """

        self.settings = settings
        self.extra_fields = list(extra_fields)
        self.clock = clock or utc_now

    @classmethod
    def from_settings(
        cls,
        settings: ContentSettings,
        extra_fields: Mapping[str, ExtraFieldSettings],
        *,
        clock: Clock | None = None,
    ) -> "DocumentAssembler":
        return cls(settings, extra_fields=extra_fields_from_settings(extra_fields), clock=clock)

    def assemble(
        self, item: ContentItem, acquisition: Optional[AcquisitionOutput] = None
    ) -> Dict[str, Any]:
        """Return the document for ``item``.

        Args:
            item: Item being indexed.
            acquisition: Acquired content; no content field when absent or empty.

        Returns:
            Dict[str, Any]: Document with core, type, content and extra fields.
        """

        document: Dict[str, Any] = {
            "item_id": item.id,
            "site_id": item.site_id,
            "item_type": item.kind.value,
            "title": item.title,
            "slug": item.slug,
            "status": item.status,
            "date_created": _iso(item.date_created),
            "date_updated": _iso(item.date_updated),
            "enabled": item.enabled,
            "archived": item.archived,
            "indexed_at": self.clock().isoformat(),
        }
        if item.url:
            document["url"] = item.url

        for name in TYPE_FIELDS[item.kind]:
            document[name] = serialize_value(item.attributes.get(name))

        if acquisition is not None:
            if acquisition.content:
                document[self.settings.content_field_name] = acquisition.content
            if self.settings.store_field_data and acquisition.fields:
                document["fields"] = {
                    handle: _field_payload(data)
                    for handle, data in acquisition.fields.items()
                }

        for extra in self.extra_fields:
            value = extra.resolve(item)
            if value is None:
                continue
            document[extra.name] = serialize_value(value)
        return document


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _field_payload(data: Any) -> Any:
    if isinstance(data, FieldData):
        return data.to_payload()
    return serialize_value(data)


__all__ = [
    "DocumentAssembler",
    "ExtraField",
    "extra_fields_from_settings",
    "TYPE_FIELDS",
    "utc_now",
]
