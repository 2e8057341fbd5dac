"""Content acquisition combining structured extraction and frontend fetching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cmsindex.config.models import ContentSettings, FrontendFetchSettings
from cmsindex.content.models import ContentItem, ItemKind
from cmsindex.content.source import ContentSource

from .fetch import FrontendFetcher
from .fields import StructuredExtraction, StructuredFieldExtractor
from .models import ContentAcquisitionDiagnostic
from .text import cap_content, strip_control_characters

LOGGER = logging.getLogger(__name__)

BINARY_ASSET_KINDS = frozenset({"pdf", "image", "video", "audio"})


@dataclass(slots=True)
class AcquisitionOutput:
    """Content obtained for one item.

    Attributes:
        content: Searchable text; empty when nothing usable was found.
        fields: Structured field data keyed by handle.
        diagnostic: Attempt diagnostic for frontend or asset acquisition.
        source: Which strategy produced ``content`` (structured, frontend, asset, none).
    """

    content: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)
    diagnostic: ContentAcquisitionDiagnostic = field(default_factory=ContentAcquisitionDiagnostic)
    source: str = "none"

    @property
    def partial(self) -> bool:
        """Return True when a required content source was attempted and failed."""
        return self.diagnostic.failed


class ContentAcquisitionEngine:
    """Obtain searchable text for an item according to configuration.

    Structured extraction runs first when allowed for the item. A frontend
    fetch follows only when extraction produced no field content and fetching
    is permitted for the item. The engine never raises.
    """

    def __init__(
        self,
        content_settings: ContentSettings,
        fetch_settings: FrontendFetchSettings,
        *,
        extractor: StructuredFieldExtractor,
        fetcher: FrontendFetcher,
        source: Optional[ContentSource] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            content_settings: Structured extraction settings.
            fetch_settings: Frontend fetch settings.
            extractor: Structured field extractor.
            fetcher: Frontend fetcher.
            source: Content source used for field layouts and values.
        """

        self.content_settings = content_settings
        self.fetch_settings = fetch_settings
        self.extractor = extractor
        self.fetcher = fetcher
        self.source = source

    def acquire(self, item: ContentItem) -> AcquisitionOutput:
        """Return content for ``item`` with the attempt diagnostic."""
        try:
            output = self._acquire(item)
        except Exception as exc:  # pragma: no cover - guarded by component contracts
            LOGGER.warning(
                "Content acquisition failed for %s %s: %s", item.kind.value, item.id, exc
            )
            output = AcquisitionOutput(
                diagnostic=ContentAcquisitionDiagnostic(
                    attempted=True, url=item.url, error=str(exc)
                )
            )
        if output.content:
            output.content = cap_content(output.content, self.fetch_settings.max_content_bytes)
        return output

    def structured_allowed(self, item: ContentItem) -> bool:
        if not self.content_settings.prefer_structured_fields:
            return False
        return not _excluded(item, self.content_settings.excluded.for_kind(item.kind))

    def fetch_allowed(self, item: ContentItem) -> bool:
        settings = self.fetch_settings
        if not settings.enabled or _excluded(item, settings.excluded.for_kind(item.kind)):
            return False
        if item.kind is ItemKind.ASSET:
            kind = item.asset_kind or ""
            return kind in BINARY_ASSET_KINDS or kind in settings.asset_kinds
        return True

    def _acquire(self, item: ContentItem) -> AcquisitionOutput:
        structured: Optional[StructuredExtraction] = None
        allow_structured = self.structured_allowed(item)
        if allow_structured:
            structured = self._extract(item)
            if structured.has_field_content:
                return AcquisitionOutput(structured.content, structured.fields, source="structured")

        fields = structured.fields if structured else {}
        may_fall_back = not allow_structured or self.content_settings.fallback_to_frontend_fetch
        if may_fall_back and self.fetch_allowed(item):
            fetched = self._fetch(item)
            if fetched is not None:
                fetched.fields = fields
                return fetched

        if structured is not None and structured.content:
            return AcquisitionOutput(structured.content, fields, source="structured")
        return AcquisitionOutput(fields=fields)

    def _extract(self, item: ContentItem) -> StructuredExtraction:
        layout = self.source.field_layout(item) if self.source is not None else item.field_layout
        values: Any = item.field_values
        if self.source is not None and layout is not None:
            values = _SourceValues(self.source, item)
        try:
            return self.extractor.extract(item, layout, values)
        except Exception as exc:
            LOGGER.warning(
                "Structured extraction failed for %s %s: %s", item.kind.value, item.id, exc
            )
            return StructuredExtraction()

    def _fetch(self, item: ContentItem) -> Optional[AcquisitionOutput]:
        if item.kind is ItemKind.ASSET:
            return self._acquire_asset(item)
        if not item.url:
            return None
        result = self.fetcher.fetch(item.url, item)
        return AcquisitionOutput(result.content, diagnostic=result.diagnostic, source="frontend")

    def _acquire_asset(self, item: ContentItem) -> Optional[AcquisitionOutput]:
        kind = item.asset_kind or ""
        if kind in BINARY_ASSET_KINDS:
            # Metadata alone fully indexes binary assets.
            return AcquisitionOutput(
                diagnostic=_asset_diagnostic(item),
                source="asset",
            )
        contents = item.attributes.get("contents")
        if isinstance(contents, str):
            text = strip_control_characters(contents).strip()
            return AcquisitionOutput(
                text,
                diagnostic=_asset_diagnostic(item),
                source="asset",
            )
        if not item.url:
            return None
        result = self.fetcher.fetch(item.url, item)
        return AcquisitionOutput(result.content, diagnostic=result.diagnostic, source="frontend")


class _SourceValues:
    """Mapping-like view resolving field values through a content source."""

    def __init__(self, source: ContentSource, item: ContentItem) -> None:
        self._source = source
        self._item = item

    def get(self, handle: str, default: Any = None) -> Any:
        value = self._source.field_value(self._item, handle)
        return default if value is None else value


def _excluded(item: ContentItem, handles: list[str]) -> bool:
    return bool(item.group) and item.group in handles


def _asset_diagnostic(item: ContentItem) -> ContentAcquisitionDiagnostic:
    return ContentAcquisitionDiagnostic(attempted=True, succeeded=True, url=item.url)


__all__ = ["AcquisitionOutput", "ContentAcquisitionEngine", "BINARY_ASSET_KINDS"]
