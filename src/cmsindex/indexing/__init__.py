"""Indexing pipeline: eligibility, acquisition, assembly and outcomes."""

from .acquisition import AcquisitionOutput, ContentAcquisitionEngine
from .assembler import DocumentAssembler, ExtraField, extra_fields_from_settings
from .bulk import BulkReindexer
from .eligibility import EligibilityClassifier, EligibilityDecision
from .fetch import FetchResult, FrontendFetcher
from .fields import FieldData, StructuredExtraction, StructuredFieldExtractor
from .models import BatchReport, ContentAcquisitionDiagnostic, OutcomeResult, OutcomeStatus
from .orchestrator import Indexer, document_id_for
from .outcomes import OutcomeReporter
from .safety import UrlSafetyPolicy

__all__ = [
    "AcquisitionOutput",
    "ContentAcquisitionEngine",
    "DocumentAssembler",
    "ExtraField",
    "extra_fields_from_settings",
    "BulkReindexer",
    "EligibilityClassifier",
    "EligibilityDecision",
    "FetchResult",
    "FrontendFetcher",
    "FieldData",
    "StructuredExtraction",
    "StructuredFieldExtractor",
    "BatchReport",
    "ContentAcquisitionDiagnostic",
    "OutcomeResult",
    "OutcomeStatus",
    "Indexer",
    "document_id_for",
    "OutcomeReporter",
    "UrlSafetyPolicy",
]
