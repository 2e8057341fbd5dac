"""Fakes and builders shared by the cmsindex test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests
from requests.structures import CaseInsensitiveDict

from cmsindex.config.models import IndexerConfig
from cmsindex.content.models import ContentItem, FieldLayout, ItemKind
from cmsindex.content.source import ExportContentSource
from cmsindex.services import Services, build_services

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PUBLIC_ADDRESS = "93.184.216.34"


class FakeStore:
    """In-memory document store recording every call."""

    def __init__(self) -> None:
        self.indexes: Dict[str, Dict[str, Any]] = {}
        self.documents: Dict[tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.upsert_error: Optional[Exception] = None
        self.reachable = True

    def ping(self) -> bool:
        return self.reachable

    def index_exists(self, index: str) -> bool:
        return index in self.indexes

    def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        self.calls.append(("create_index", index))
        if index in self.indexes:
            return False
        self.indexes[index] = body
        return True

    def delete_index(self, index: str) -> bool:
        self.calls.append(("delete_index", index))
        if index not in self.indexes:
            return False
        del self.indexes[index]
        self.documents = {key: doc for key, doc in self.documents.items() if key[0] != index}
        return True

    def get_mapping(self, index: str) -> Dict[str, Any]:
        return self.indexes[index]["mappings"]

    def upsert(self, index: str, document_id: str, document: Dict[str, Any]) -> None:
        self.calls.append(("upsert", index, document_id))
        if self.upsert_error is not None:
            raise self.upsert_error
        self.documents[(index, document_id)] = document

    def delete(self, index: str, document_id: str) -> bool:
        self.calls.append(("delete", index, document_id))
        return self.documents.pop((index, document_id), None) is not None

    def operations(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(
        self,
        body: bytes | str = b"",
        *,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        url: str = "",
        encoding: Optional[str] = "utf-8",
    ) -> None:
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {"Content-Type": "text/html; charset=utf-8"})
        self.url = url
        self.encoding = encoding
        self.closed = False

    @property
    def is_redirect(self) -> bool:
        return "location" in self.headers and self.status_code in (301, 302, 303, 307, 308)

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Session returning canned responses (or raising canned errors) per URL."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.requests: List[tuple[str, Dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((url, kwargs))
        try:
            outcome = self.routes[url]
        except KeyError as exc:
            raise requests.exceptions.ConnectionError(f"no route for {url}") from exc
        if isinstance(outcome, Exception):
            raise outcome
        outcome.url = outcome.url or url
        return outcome

    @property
    def requested_urls(self) -> List[str]:
        return [url for url, _ in self.requests]


def static_resolver(
    mapping: Optional[Dict[str, List[str]]] = None,
) -> Callable[[str, Optional[int]], List[str]]:
    """Return a resolver answering from ``mapping`` and a public address otherwise."""
    mapping = mapping or {}

    def _resolve(host: str, port: Optional[int]) -> List[str]:
        return list(mapping.get(host, [PUBLIC_ADDRESS]))

    return _resolve


def make_item(**overrides: Any) -> ContentItem:
    """Build a live entry with a URL, overriding any attribute."""
    data: Dict[str, Any] = {
        "id": 1,
        "site_id": 1,
        "kind": ItemKind.ENTRY,
        "title": "Hello World",
        "slug": "hello-world",
        "status": "live",
        "url": "https://example.com/hello-world",
        "group": "article",
        "date_created": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "date_updated": datetime(2024, 1, 2, tzinfo=timezone.utc),
    }
    layout = overrides.pop("layout", None)
    if layout is not None:
        data["field_layout"] = FieldLayout.from_tree(layout)
    data.update(overrides)
    return ContentItem(**data)


def make_config(**sections: Any) -> IndexerConfig:
    """Return a config with ``sections`` merged over defaults."""
    return IndexerConfig.model_validate(sections)


def make_services(
    config: Optional[IndexerConfig] = None,
    *,
    store: Optional[FakeStore] = None,
    items: Optional[List[ContentItem]] = None,
    session: Optional[FakeSession] = None,
    resolver: Optional[Callable[[str, Optional[int]], List[str]]] = None,
    **kwargs: Any,
) -> Services:
    """Wire services around fakes with a fixed clock."""
    return build_services(
        config or IndexerConfig(),
        store=store if store is not None else FakeStore(),
        source=ExportContentSource(items or []),
        session=session or FakeSession(),
        resolver=resolver or static_resolver(),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


