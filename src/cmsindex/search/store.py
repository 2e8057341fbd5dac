"""Document store contract and the Elasticsearch adapter."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError

from cmsindex.config.models import ConnectionSettings
from cmsindex.errors import StorageError

LOGGER = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Operations the pipeline performs against the search engine."""

    def ping(self) -> bool: ...

    def index_exists(self, index: str) -> bool: ...

    def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        """Create ``index``; return False when it already exists."""
        ...

    def delete_index(self, index: str) -> bool:
        """Delete ``index``; return False when it does not exist."""
        ...

    def get_mapping(self, index: str) -> Dict[str, Any]: ...

    def upsert(self, index: str, document_id: str, document: Dict[str, Any]) -> None:
        """Store ``document`` under ``document_id``, replacing any prior version."""
        ...

    def delete(self, index: str, document_id: str) -> bool:
        """Delete a document; return False when it does not exist."""
        ...


def normalize_endpoint(endpoint: str) -> str:
    """Return ``endpoint`` with an explicit scheme; bare ``host:port`` implies http."""
    endpoint = endpoint.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = f"http://{endpoint}"
    return endpoint


class ElasticsearchStore:
    """:class:`DocumentStore` backed by the official Elasticsearch client.

    Client errors are translated into :class:`StorageError` carrying a short,
    user-safe message; the client exception stays chained for logs.
    """

    def __init__(self, client: Elasticsearch) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> "ElasticsearchStore":
        """Build a store from connection settings.

        Args:
            settings: Endpoint, credentials and timeout options.

        Returns:
            ElasticsearchStore: Store wrapping a configured client.
        """

        options: Dict[str, Any] = {
            "request_timeout": settings.request_timeout,
            "verify_certs": settings.verify_certs,
        }
        if settings.auth_enabled:
            options["basic_auth"] = (settings.username, settings.password)
        client = Elasticsearch(normalize_endpoint(settings.endpoint), **options)
        return cls(client)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except (ApiError, TransportError) as exc:
            LOGGER.warning("Search engine ping failed: %s", exc)
            return False

    def index_exists(self, index: str) -> bool:
        try:
            return bool(self.client.indices.exists(index=index))
        except (ApiError, TransportError) as exc:
            raise _storage_error(exc, "index_exists", index) from exc

    def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        try:
            self.client.indices.create(
                index=index,
                settings=body.get("settings"),
                mappings=body.get("mappings"),
            )
        except ApiError as exc:
            if _error_type(exc) == "resource_already_exists_exception":
                LOGGER.info("Index %s already exists", index)
                return False
            raise _storage_error(exc, "create_index", index) from exc
        except TransportError as exc:
            raise _storage_error(exc, "create_index", index) from exc
        LOGGER.info("Created index %s", index)
        return True

    def delete_index(self, index: str) -> bool:
        try:
            self.client.indices.delete(index=index)
        except NotFoundError:
            LOGGER.info("Index %s already absent", index)
            return False
        except (ApiError, TransportError) as exc:
            raise _storage_error(exc, "delete_index", index) from exc
        LOGGER.info("Deleted index %s", index)
        return True

    def get_mapping(self, index: str) -> Dict[str, Any]:
        try:
            response = self.client.indices.get_mapping(index=index)
        except (ApiError, TransportError) as exc:
            raise _storage_error(exc, "get_mapping", index) from exc
        body = dict(response.body if hasattr(response, "body") else response)
        return dict(body.get(index, {}).get("mappings", {}))

    def upsert(self, index: str, document_id: str, document: Dict[str, Any]) -> None:
        try:
            self.client.index(index=index, id=document_id, document=document)
        except (ApiError, TransportError) as exc:
            raise _storage_error(exc, "upsert", index) from exc

    def delete(self, index: str, document_id: str) -> bool:
        try:
            self.client.delete(index=index, id=document_id)
        except NotFoundError:
            return False
        except (ApiError, TransportError) as exc:
            raise _storage_error(exc, "delete", index) from exc
        return True


def _error_type(exc: ApiError) -> str:
    try:
        return str(exc.body["error"]["type"])
    except (KeyError, TypeError):
        return str(getattr(exc, "error", ""))


def _storage_error(exc: Exception, operation: str, index: Optional[str]) -> StorageError:
    LOGGER.error("Search engine %s failed for %s", operation, index, exc_info=exc)
    if isinstance(exc, ApiError):
        status = f"{exc.meta.status} {_error_type(exc)}"
        message = f"Search engine rejected {operation} on {index} ({status})"
    else:
        message = f"Search engine is unreachable during {operation}"
    return StorageError(message, operation=operation, index=index)


__all__ = ["DocumentStore", "ElasticsearchStore", "normalize_endpoint"]
