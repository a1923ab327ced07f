"""
Service Exceptions

Errors raised by services and collaborator clients. Routes translate them
into HTTP responses; orchestrators convert collaborator errors into decisions.
"""


class PhotoServiceError(Exception):
    """Base class for service errors."""


class UploadValidationError(PhotoServiceError):
    """Malformed input: wrong type, size, duration, or an invalid request."""


class CollaboratorError(PhotoServiceError):
    """An external service failed, timed out, or answered with garbage."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class AccessDeniedError(PhotoServiceError):
    """The viewer may not see the requested asset."""


class AssetNotFoundError(PhotoServiceError):
    """The asset (or the requested variant of it) does not exist."""


class DuplicateReportError(PhotoServiceError):
    """The reporter already reported this asset."""


class InvalidTransitionError(PhotoServiceError):
    """A moderation source asked for a status it may never set."""


class StorageError(PhotoServiceError):
    """Object storage could not read or write a blob."""


class TranscriptionError(PhotoServiceError):
    """Audio could not be decoded or transcribed."""
