"""Index naming and mapping generation derived from configuration."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from cmsindex.config.models import IndexSettings, SiteSettings
from cmsindex.content.models import ItemKind
from cmsindex.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

LANGUAGE_ANALYZERS = {
    "ar": "arabic",
    "bg": "bulgarian",
    "ca": "catalan",
    "cs": "czech",
    "da": "danish",
    "de": "german",
    "el": "greek",
    "en": "english",
    "es": "spanish",
    "fi": "finnish",
    "fr": "french",
    "hu": "hungarian",
    "it": "italian",
    "ja": "cjk",
    "ko": "cjk",
    "nl": "dutch",
    "no": "norwegian",
    "pt": "portuguese",
    "ro": "romanian",
    "ru": "russian",
    "sv": "swedish",
    "tr": "turkish",
    "zh": "cjk",
}
DEFAULT_ANALYZER = "standard"

CORE_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "item_id": {"type": "integer"},
    "site_id": {"type": "integer"},
    "item_type": {"type": "keyword"},
    "url": {"type": "keyword"},
    "slug": {"type": "keyword"},
    "status": {"type": "keyword"},
    "date_created": {"type": "date"},
    "date_updated": {"type": "date"},
    "indexed_at": {"type": "date"},
    "enabled": {"type": "boolean"},
    "archived": {"type": "boolean"},
}

TYPE_PROPERTIES: Dict[ItemKind, Dict[str, Dict[str, Any]]] = {
    ItemKind.ENTRY: {
        "post_date": {"type": "date"},
        "expiry_date": {"type": "date"},
    },
    ItemKind.ASSET: {
        "filename": {"type": "keyword"},
        "kind": {"type": "keyword"},
        "size": {"type": "long"},
        "width": {"type": "integer"},
        "height": {"type": "integer"},
    },
    ItemKind.CATEGORY: {
        "level": {"type": "integer"},
        "lft": {"type": "integer"},
        "rgt": {"type": "integer"},
    },
    ItemKind.PRODUCT: {
        "price": {"type": "float"},
        "sale_price": {"type": "float"},
        "sku": {"type": "keyword"},
        "stock": {"type": "integer"},
        "weight": {"type": "float"},
    },
    ItemKind.DIGITAL_PRODUCT: {
        "price": {"type": "float"},
        "sku": {"type": "keyword"},
    },
}

_LANGUAGE_SPLIT = re.compile(r"[-_]")


def analyzer_for(language: Optional[str]) -> str:
    """Return the analyzer for a site language tag such as ``en-US``.

    Unsupported languages fall back to ``standard`` and are logged.
    """

    code = _LANGUAGE_SPLIT.split((language or "").strip().lower(), maxsplit=1)[0]
    try:
        return LANGUAGE_ANALYZERS[code]
    except KeyError:
        error = ConfigurationError(f"No analyzer for language '{language}'")
        LOGGER.warning("%s; using %s", error, DEFAULT_ANALYZER)
        return DEFAULT_ANALYZER


class IndexNaming:
    """Pure functions from configuration and site id to index names."""

    def __init__(self, settings: IndexSettings) -> None:
        self.settings = settings

    def suffix_for(self, kind: Optional[ItemKind]) -> str:
        if kind is not None:
            override = self.settings.type_index_names.get(ItemKind(kind).value, "")
            if override:
                return override
        return self.settings.fallback_name

    def has_dedicated_index(self, kind: ItemKind) -> bool:
        return bool(self.settings.type_index_names.get(ItemKind(kind).value))

    def index_name(self, site_id: int, kind: Optional[ItemKind] = None) -> str:
        """Return ``prefix + suffix + "_" + site_id`` for ``kind``."""
        return f"{self.settings.prefix}{self.suffix_for(kind)}_{site_id}"

    def index_names(self, site_id: int) -> List[str]:
        """Return every distinct index name for ``site_id``, fallback first."""
        names = [self.index_name(site_id)]
        for kind in ItemKind:
            name = self.index_name(site_id, kind)
            if name not in names:
                names.append(name)
        return names

    def kinds_for(self, index_name: str, site_id: int, kinds: Iterable[ItemKind]) -> List[ItemKind]:
        """Return the kinds among ``kinds`` routed to ``index_name``."""
        return [kind for kind in kinds if self.index_name(site_id, kind) == index_name]


class MappingBuilder:
    """Compute index bodies (settings and mappings) on demand."""

    def __init__(
        self,
        naming: IndexNaming,
        *,
        sites: Sequence[SiteSettings] = (),
        enabled_kinds: Iterable[ItemKind] = tuple(ItemKind),
        content_field_name: str = "content",
        store_field_data: bool = False,
        extra_fields: Iterable[Any] = (),
    ) -> None:
        """Initialize the builder.

        Args:
            naming: Naming scheme used to route kinds to indexes.
            sites: Configured sites, consulted for their language.
            enabled_kinds: Kinds whose field groups are mapped.
            content_field_name: Name of the content text field.
            store_field_data: Whether the ``fields`` object is mapped.
            extra_fields: Objects exposing ``name`` and ``mapping``.
        """

        self.naming = naming
        self.sites = list(sites)
        self.enabled_kinds = [ItemKind(kind) for kind in enabled_kinds]
        self.content_field_name = content_field_name
        self.store_field_data = store_field_data
        self.extra_fields = list(extra_fields)

    def language_for(self, site_id: int) -> str:
        for site in self.sites:
            if site.id == site_id:
                return site.language
        return "en"

    def build(self, site_id: int, kind: Optional[ItemKind] = None) -> Dict[str, Any]:
        """Return the create-index body for ``site_id`` and optional ``kind``.

        Args:
            site_id: Site whose language selects the analyzer.
            kind: Kind whose index is built; the fallback index when None.

        Returns:
            Dict[str, Any]: Body with ``settings`` and ``mappings`` keys.
        """

        analyzer = analyzer_for(self.language_for(site_id))
        index_name = self.naming.index_name(site_id, kind)
        properties: Dict[str, Any] = {name: dict(prop) for name, prop in CORE_PROPERTIES.items()}
        properties["title"] = {
            "type": "text",
            "analyzer": analyzer,
            "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
        }
        properties[self.content_field_name] = {"type": "text", "analyzer": analyzer}

        for routed in self.naming.kinds_for(index_name, site_id, self.enabled_kinds):
            for name, prop in TYPE_PROPERTIES[routed].items():
                properties[name] = dict(prop)

        if self.store_field_data:
            properties["fields"] = {"type": "object", "enabled": False}

        for extra in self.extra_fields:
            mapping = getattr(extra, "mapping", None)
            if not isinstance(mapping, dict):
                mapping = {"type": "keyword"}
            properties[extra.name] = dict(mapping)

        return {
            "settings": {
                "number_of_shards": self.naming.settings.number_of_shards,
                "number_of_replicas": self.naming.settings.number_of_replicas,
                "analysis": {"analyzer": {"default": {"type": analyzer}}},
            },
            "mappings": {"properties": properties},
        }


__all__ = [
    "IndexNaming",
    "MappingBuilder",
    "analyzer_for",
    "LANGUAGE_ANALYZERS",
    "DEFAULT_ANALYZER",
    "CORE_PROPERTIES",
    "TYPE_PROPERTIES",
]
