"""specsync: save parsed content specs to a content server."""

from specsync.backend import Backend, Validator
from specsync.cancellation import CancellationToken
from specsync.exceptions import (
    BackendError,
    NotFoundError,
    ProcessingError,
    ShutdownRequested,
    SpecSyncError,
    SpecValidationError,
    TagLookupError,
)
from specsync.processor import ProcessingOptions, ProcessorState, ProcessResult, Processor
from specsync.rest_backend import RestBackend
from specsync.schemas import ContentSpec, PersistedNode, User
from specsync.validation import SpecValidator

__all__ = [
    "Backend",
    "BackendError",
    "CancellationToken",
    "ContentSpec",
    "NotFoundError",
    "PersistedNode",
    "ProcessResult",
    "ProcessingError",
    "ProcessingOptions",
    "Processor",
    "ProcessorState",
    "RestBackend",
    "ShutdownRequested",
    "SpecSyncError",
    "SpecValidationError",
    "SpecValidator",
    "TagLookupError",
    "User",
    "Validator",
]
