"""SQLite job queue and result store."""

from .jobs import JobQueueDB
from .results import ResultPersisterDB
from .schema import ensure_schema

__all__ = [
    "JobQueueDB",
    "ResultPersisterDB",
    "ensure_schema",
]
