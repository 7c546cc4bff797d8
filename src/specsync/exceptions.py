"""Custom exceptions for specsync."""


class SpecSyncError(Exception):
    """Base exception for specsync operations."""


class SpecValidationError(SpecSyncError):
    """Content spec failed validation before any write."""


class TagLookupError(SpecSyncError):
    """A tag, type or writer name resolved to zero or several tags."""


class ProcessingError(SpecSyncError):
    """Error while saving a content spec to the backend."""


class ShutdownRequested(SpecSyncError):
    """Processing stopped at a checkpoint because of a cancellation request."""


class BackendError(SpecSyncError):
    """Error talking to the content backend."""


class NotFoundError(BackendError):
    """Requested entity does not exist on the backend."""
