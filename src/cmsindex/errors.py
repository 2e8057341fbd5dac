"""Exception taxonomy shared by the indexing pipeline."""

from __future__ import annotations


class IndexerError(Exception):
    """Base exception for indexing pipeline failures."""


class ValidationError(IndexerError):
    """Raised when identifiers are missing or malformed, before any side effect."""


class AcquisitionError(IndexerError):
    """Raised when content cannot be fetched or extracted.

    Attributes:
        code: Short diagnostic code recorded on the acquisition diagnostic.
    """

    def __init__(self, message: str, *, code: str = "acquisition_failed") -> None:
        super().__init__(message)
        self.code = code


class UnsafeUrlError(AcquisitionError):
    """Raised when a URL fails SSRF validation."""

    def __init__(self, message: str, *, code: str = "unsafe_url") -> None:
        super().__init__(message, code=code)


class StorageError(IndexerError):
    """Raised when the document store cannot complete an operation.

    The message is safe to show to users; the original exception is chained
    as ``__cause__`` and only reaches server-side logs.
    """

    def __init__(self, message: str, *, operation: str = "", index: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.index = index


class ConfigError(IndexerError):
    """Raised when configuration files or overrides cannot be processed."""


class ConfigurationError(IndexerError):
    """Raised when an extension or mapping setting cannot be applied."""


__all__ = [
    "IndexerError",
    "ValidationError",
    "AcquisitionError",
    "UnsafeUrlError",
    "StorageError",
    "ConfigError",
    "ConfigurationError",
]
