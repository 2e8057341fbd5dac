"""Extension points: ordered hook handlers and guarded user callbacks.

Handlers are plain callables registered per :class:`HookEvent`. Each receives
a mutable context dataclass and may edit it or set ``skip_default`` to stop
the pipeline's default operation. A failing handler is logged and ignored so
extensions can never abort indexing.
"""

from __future__ import annotations

import importlib
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar

from cmsindex.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C", bound="HookContext")


class HookEvent(str, Enum):
    """Named points in the pipeline where handlers run."""

    BEFORE_INDEX_ITEM = "before_index_item"
    AFTER_INDEX_ITEM = "after_index_item"
    BEFORE_REMOVE_ITEM = "before_remove_item"
    AFTER_REMOVE_ITEM = "after_remove_item"
    BEFORE_CREATE_INDEX = "before_create_index"
    AFTER_CREATE_INDEX = "after_create_index"
    BEFORE_DELETE_INDEX = "before_delete_index"
    AFTER_DELETE_INDEX = "after_delete_index"
    BEFORE_RECREATE_INDEX = "before_recreate_index"
    AFTER_RECREATE_INDEX = "after_recreate_index"
    BEFORE_EXTRACT_CONTENT = "before_extract_content"
    AFTER_EXTRACT_CONTENT = "after_extract_content"
    BEFORE_EXTRACT_FIELDS = "before_extract_fields"
    AFTER_EXTRACT_FIELDS = "after_extract_fields"
    TRANSFORM_FIELD = "transform_field"


@dataclass
class HookContext:
    """Base context passed to hook handlers."""

    skip_default: bool = False


@dataclass
class IndexItemContext(HookContext):
    """Context for item index/remove hooks."""

    item: Any = None
    document: Dict[str, Any] = field(default_factory=dict)
    index_name: str = ""
    document_id: str = ""


@dataclass
class IndexManagementContext(HookContext):
    """Context for index create/delete/recreate hooks."""

    site_id: int = 0
    index_name: str = ""
    body: Dict[str, Any] = field(default_factory=dict)
    operation: str = ""
    index_existed: bool = False


@dataclass
class ContentExtractionContext(HookContext):
    """Context for HTML-to-text extraction hooks."""

    item: Any = None
    raw_content: str = ""
    extracted_content: str = ""


@dataclass
class FieldExtractionContext(HookContext):
    """Context for structured field extraction hooks."""

    item: Any = None
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FieldTransformContext(HookContext):
    """Context for per-field transform hooks."""

    item: Any = None
    descriptor: Any = None
    raw_value: Any = None
    data: Any = None


Handler = Callable[[Any], None]


class HookRegistry:
    """Ordered handler lists keyed by event."""

    def __init__(self) -> None:
        self._handlers: Dict[HookEvent, List[Handler]] = defaultdict(list)

    def register(self, event: HookEvent, handler: Handler) -> Handler:
        """Append ``handler`` to the list for ``event`` and return it."""
        self._handlers[HookEvent(event)].append(handler)
        return handler

    def on(self, event: HookEvent) -> Callable[[Handler], Handler]:
        """Decorator registering the wrapped function for ``event``."""

        def _decorator(handler: Handler) -> Handler:
            return self.register(event, handler)

        return _decorator

    def has_handlers(self, event: HookEvent) -> bool:
        return bool(self._handlers.get(HookEvent(event)))

    def run(self, event: HookEvent, context: C) -> C:
        """Invoke handlers for ``event`` in registration order.

        Handler exceptions are logged and do not stop later handlers.
        """
        for handler in list(self._handlers.get(HookEvent(event), ())):
            try:
                handler(context)
            except Exception as exc:
                LOGGER.warning(
                    "Hook handler %s for %s failed: %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    HookEvent(event).value,
                    exc,
                )
        return context


def safe_call(
    callback: Optional[Callable[..., T]],
    *args: Any,
    context: str = "callback",
    default: T | None = None,
) -> T | None:
    """Invoke a user callback, returning ``default`` if it is missing or raises."""
    if callback is None:
        return default
    if not callable(callback):
        LOGGER.warning("Invalid callback in context: %s", context)
        return default
    try:
        return callback(*args)
    except Exception as exc:
        LOGGER.warning("Callback execution failed in %s: %s", context, exc)
        return default


def load_callable(path: str) -> Callable[..., Any]:
    """Import ``package.module:attribute`` (or ``package.module.attribute``).

    Raises:
        ConfigurationError: If the path is malformed, cannot be imported, or is not callable.
    """
    if not isinstance(path, str) or not path.strip():
        raise ConfigurationError("Callable path must be a non-empty string.")
    module_name, sep, attribute = path.strip().partition(":")
    if not sep:
        module_name, _, attribute = module_name.rpartition(".")
    if not module_name or not attribute:
        raise ConfigurationError(f"Malformed callable path '{path}'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import module '{module_name}': {exc}") from exc
    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigurationError(f"'{path}' does not resolve to an attribute.") from exc
    if not callable(target):
        raise ConfigurationError(f"'{path}' is not callable.")
    return target


def load_optional_callable(path: Optional[str], *, context: str) -> Optional[Callable[..., Any]]:
    """Load ``path`` if set; log and return None when it is malformed."""
    if not path:
        return None
    try:
        return load_callable(path)
    except ConfigurationError as exc:
        LOGGER.warning("Ignoring %s: %s", context, exc)
        return None


__all__ = [
    "HookEvent",
    "HookContext",
    "IndexItemContext",
    "IndexManagementContext",
    "ContentExtractionContext",
    "FieldExtractionContext",
    "FieldTransformContext",
    "HookRegistry",
    "safe_call",
    "load_callable",
    "load_optional_callable",
]
