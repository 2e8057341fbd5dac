"""Result models produced by the indexing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OutcomeStatus(str, Enum):
    """Terminal classification of one indexing attempt."""

    SUCCESS = "success"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    FAILED = "failed"

    @property
    def stored(self) -> bool:
        """Return True when a document was written for this status."""
        return self in {OutcomeStatus.SUCCESS, OutcomeStatus.PARTIAL}


@dataclass(slots=True)
class ContentAcquisitionDiagnostic:
    """Ephemeral record of how content acquisition went for one item.

    Attributes:
        attempted: Whether a content source that can fail was attempted.
        succeeded: Whether that source produced usable content.
        url: URL fetched, when a frontend fetch was attempted.
        status_code: Final HTTP status code.
        error: Short error code or message.
        headers: Selected response headers.
    """

    attempted: bool = False
    succeeded: bool = False
    url: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        """Return True when acquisition was attempted and did not succeed."""
        return self.attempted and not self.succeeded

    def to_payload(self, *, include_debug: bool = False) -> Dict[str, Any]:
        """Return a JSON-ready mapping.

        Args:
            include_debug: Whether the HTTP status code and headers are included.

        Returns:
            Dict[str, Any]: Diagnostic fields for API or CLI consumers.
        """

        payload: Dict[str, Any] = {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "url": self.url,
            "error": self.error,
        }
        if include_debug:
            payload["statusCode"] = self.status_code
            payload["headers"] = dict(self.headers)
        return payload


@dataclass(slots=True)
class OutcomeResult:
    """Classified result of indexing, removing or skipping one item.

    Attributes:
        status: Terminal status.
        reason: Machine-readable reason code.
        message: User-facing message; never contains raw store errors.
        diagnostic: Acquisition diagnostic, if content acquisition ran.
        document_id: Deterministic id of the stored document.
        index_name: Target index name.
        error_type: Exception class name for failures.
        include_debug: Whether debug details are emitted in payloads.
    """

    status: OutcomeStatus
    reason: str = ""
    message: str = ""
    diagnostic: Optional[ContentAcquisitionDiagnostic] = None
    document_id: Optional[str] = None
    index_name: Optional[str] = None
    error_type: Optional[str] = None
    include_debug: bool = False

    @classmethod
    def success(
        cls,
        message: str = "Item indexed successfully",
        *,
        document_id: Optional[str] = None,
        index_name: Optional[str] = None,
        diagnostic: Optional[ContentAcquisitionDiagnostic] = None,
    ) -> "OutcomeResult":
        return cls(
            OutcomeStatus.SUCCESS,
            reason="indexed",
            message=message,
            diagnostic=diagnostic,
            document_id=document_id,
            index_name=index_name,
        )

    @classmethod
    def partial(
        cls,
        message: str,
        *,
        document_id: Optional[str] = None,
        index_name: Optional[str] = None,
        diagnostic: Optional[ContentAcquisitionDiagnostic] = None,
    ) -> "OutcomeResult":
        return cls(
            OutcomeStatus.PARTIAL,
            reason="content_unavailable",
            message=message,
            diagnostic=diagnostic,
            document_id=document_id,
            index_name=index_name,
        )

    @classmethod
    def skipped(cls, message: str, *, reason: str = "ineligible") -> "OutcomeResult":
        return cls(OutcomeStatus.SKIPPED, reason=reason, message=message)

    @classmethod
    def disabled(cls, message: str, *, reason: str = "excluded") -> "OutcomeResult":
        return cls(OutcomeStatus.DISABLED, reason=reason, message=message)

    @classmethod
    def failed(
        cls,
        message: str,
        *,
        reason: str = "storage_error",
        error_type: Optional[str] = None,
        document_id: Optional[str] = None,
        index_name: Optional[str] = None,
        diagnostic: Optional[ContentAcquisitionDiagnostic] = None,
    ) -> "OutcomeResult":
        return cls(
            OutcomeStatus.FAILED,
            reason=reason,
            message=message,
            diagnostic=diagnostic,
            document_id=document_id,
            index_name=index_name,
            error_type=error_type,
        )

    @property
    def ok(self) -> bool:
        """Return True unless the attempt failed."""
        return self.status is not OutcomeStatus.FAILED

    def to_payload(self, *, include_debug: Optional[bool] = None) -> Dict[str, Any]:
        """Serialize the result for JSON consumers such as UI polling.

        Args:
            include_debug: Overrides :attr:`include_debug` when given.

        Returns:
            Dict[str, Any]: Payload with status, reason, message and diagnostics.
        """

        debug = self.include_debug if include_debug is None else include_debug
        payload: Dict[str, Any] = {
            "status": self.status.value,
            "success": self.status.stored,
            "reason": self.reason,
            "message": self.message,
        }
        if self.document_id is not None:
            payload["documentId"] = self.document_id
        if self.index_name is not None:
            payload["index"] = self.index_name
        if self.diagnostic is not None:
            payload["frontendFetch"] = self.diagnostic.to_payload(include_debug=debug)
        if debug and self.error_type:
            payload["errorType"] = self.error_type
        return payload


@dataclass(slots=True)
class BatchReport:
    """Aggregate tallies for a bulk run.

    Attributes:
        results: Per-item outcomes in completion order.
        errors: Messages for failed items.
        cancelled: Whether the run stopped early on request.
        total: Number of descriptors submitted.
    """

    results: List[OutcomeResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False
    total: int = 0

    def record(self, result: OutcomeResult, *, label: str = "") -> None:
        """Append ``result``, remembering its message when it failed."""
        self.results.append(result)
        if result.status is OutcomeStatus.FAILED:
            self.errors.append(f"{label}: {result.message}" if label else result.message)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def counts(self) -> Dict[str, int]:
        """Return tallies keyed by status value."""
        return {status.value: self.count(status) for status in OutcomeStatus}

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def exit_code(self) -> int:
        """Return 1 when any item failed, otherwise 0."""
        return 1 if self.count(OutcomeStatus.FAILED) else 0

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-ready summary."""
        return {
            "total": self.total,
            "processed": self.processed,
            "counts": self.counts,
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }


__all__ = [
    "OutcomeStatus",
    "ContentAcquisitionDiagnostic",
    "OutcomeResult",
    "BatchReport",
]
