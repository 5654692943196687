"""Exception hierarchy for the extraction pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(PipelineError):
    """Invalid or incomplete configuration. Raised at construction time."""


class TransientError(PipelineError):
    """A failure that may succeed on a later attempt."""


class StorageError(TransientError):
    """Image bytes could not be fetched."""


class PersistenceError(TransientError):
    """The result transaction could not be committed."""


class JobTimeoutError(TransientError):
    """A job exceeded its deadline."""


class VisionClientError(PipelineError):
    """A vision model request failed (transport, status or empty reply)."""


class ExtractionValidationError(PipelineError):
    """The provider produced no usable result."""


class PermanentError(PipelineError):
    """A failure that will not go away on retry."""


class CorruptImageError(PermanentError):
    """The image bytes could not be decoded."""
