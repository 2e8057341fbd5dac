"""Classification of indexing attempts into outcome results."""

from __future__ import annotations

import logging
from typing import Optional

from cmsindex.errors import StorageError, ValidationError

from .acquisition import AcquisitionOutput
from .eligibility import EligibilityDecision
from .models import ContentAcquisitionDiagnostic, OutcomeResult

LOGGER = logging.getLogger(__name__)


class OutcomeReporter:
    """Map eligibility, acquisition and storage results to outcomes.

    Args:
        debug: Whether HTTP status codes, headers and error types are exposed.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug

    def ineligible(self, decision: EligibilityDecision) -> OutcomeResult:
        """Return the Skipped or Disabled result for a failed eligibility check."""
        if decision.disabled_reason:
            result = OutcomeResult.disabled(decision.disabled_reason, reason=decision.code)
        else:
            result = OutcomeResult.skipped(
                decision.skip_reason or "Item cannot be indexed", reason=decision.code
            )
        return self._finish(result)

    def stored(
        self,
        acquisition: Optional[AcquisitionOutput],
        *,
        document_id: str,
        index_name: str,
    ) -> OutcomeResult:
        """Return Success, or Partial when a required content source failed."""
        diagnostic = acquisition.diagnostic if acquisition is not None else None
        if diagnostic is not None and diagnostic.failed:
            result = OutcomeResult.partial(
                "Item indexed with basic fields only - content fetch failed",
                document_id=document_id,
                index_name=index_name,
                diagnostic=self._diagnostic(diagnostic),
            )
        else:
            result = OutcomeResult.success(
                document_id=document_id,
                index_name=index_name,
                diagnostic=self._diagnostic(diagnostic),
            )
        return self._finish(result)

    def handled_by_hook(self, *, document_id: str, index_name: str) -> OutcomeResult:
        return self._finish(
            OutcomeResult.success(
                "Item indexing handled by an extension",
                document_id=document_id,
                index_name=index_name,
            )
        )

    def failed(
        self,
        exc: BaseException,
        *,
        document_id: Optional[str] = None,
        index_name: Optional[str] = None,
        acquisition: Optional[AcquisitionOutput] = None,
    ) -> OutcomeResult:
        """Return a Failed result whose message is safe to show to users."""
        if isinstance(exc, StorageError):
            message, reason = f"Failed to index item: {exc}", "storage_error"
        elif isinstance(exc, ValidationError):
            message, reason = str(exc), "invalid_item"
        else:
            message, reason = "Failed to index item: unexpected error", "unexpected_error"
        result = OutcomeResult.failed(
            message,
            reason=reason,
            error_type=type(exc).__name__,
            document_id=document_id,
            index_name=index_name,
            diagnostic=self._diagnostic(acquisition.diagnostic if acquisition else None),
        )
        return self._finish(result)

    def _diagnostic(
        self, diagnostic: Optional[ContentAcquisitionDiagnostic]
    ) -> Optional[ContentAcquisitionDiagnostic]:
        if diagnostic is None or not diagnostic.attempted:
            return None
        return diagnostic

    def _finish(self, result: OutcomeResult) -> OutcomeResult:
        result.include_debug = self.debug
        LOGGER.debug("Outcome %s (%s): %s", result.status.value, result.reason, result.message)
        return result


__all__ = ["OutcomeReporter"]
