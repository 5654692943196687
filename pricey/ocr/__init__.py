"""Receipt extraction pipeline: OCR or vision model to structured receipts."""

from .catalog import StoreCatalog, StoreEntry
from .config import (
    DatabaseConfig,
    ExtractionConfig,
    OrchestratorConfig,
    PipelineConfig,
    VisionConfig,
    load_config,
    validate_config,
)
from .db import JobQueueDB, ResultPersisterDB
from .errors import (
    ConfigurationError,
    CorruptImageError,
    ExtractionValidationError,
    PermanentError,
    PersistenceError,
    PipelineError,
    StorageError,
    TransientError,
)
from .models import ExtractedItem, ExtractedReceipt, JobStatus, ReceiptJob
from .orchestrator import JobOrchestrator
from .providers import ExtractionProvider, create_provider
from .reconcile import apply_reconciliation, calculate_total, reconcile

__all__ = [
    "StoreCatalog",
    "StoreEntry",
    "PipelineConfig",
    "OrchestratorConfig",
    "ExtractionConfig",
    "VisionConfig",
    "DatabaseConfig",
    "load_config",
    "validate_config",
    "JobQueueDB",
    "ResultPersisterDB",
    "PipelineError",
    "ConfigurationError",
    "TransientError",
    "StorageError",
    "PersistenceError",
    "ExtractionValidationError",
    "PermanentError",
    "CorruptImageError",
    "ReceiptJob",
    "JobStatus",
    "ExtractedItem",
    "ExtractedReceipt",
    "JobOrchestrator",
    "ExtractionProvider",
    "create_provider",
    "reconcile",
    "calculate_total",
    "apply_reconciliation",
]
