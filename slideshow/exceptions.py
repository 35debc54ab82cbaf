"""Custom exceptions for the slideshow backend.

Every exception carries a machine-readable code and the HTTP status it maps
to, so the API layer can translate it without a lookup table.
"""


class SlideshowError(Exception):
    """Base exception for all slideshow application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(self.message)


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class ResourceNotFoundError(SlideshowError):
    """Base class for resource not found errors."""

    code = "NOT_FOUND"
    status_code = 404
    message = "Resource not found"


class AlbumNotFoundError(ResourceNotFoundError):
    """Album does not exist or is not owned by the caller."""

    code = "ALBUM_NOT_FOUND"
    message = "Album not found"

    def __init__(self, album_id: str | None = None):
        message = f"Album not found: {album_id}" if album_id else self.message
        super().__init__(message)


class JobNotFoundError(ResourceNotFoundError):
    """Render job does not exist or is not owned by the caller."""

    code = "JOB_NOT_FOUND"
    message = "Slideshow not found"

    def __init__(self, job_id: str | None = None):
        message = f"Slideshow not found: {job_id}" if job_id else self.message
        super().__init__(message)


class AssetNotFoundError(ResourceNotFoundError):
    """Stored asset is missing."""

    code = "ASSET_NOT_FOUND"
    message = "Asset not found"

    def __init__(self, key: str | None = None):
        message = f"Asset not found: {key}" if key else self.message
        super().__init__(message)


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(SlideshowError):
    """Base class for validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Validation error"


class EmptyAlbumError(ValidationError):
    """Album has no images to render."""

    code = "EMPTY_ALBUM"
    message = "No images found in album"


# =============================================================================
# State / Access Errors
# =============================================================================


class JobNotReadyError(SlideshowError):
    """Render job has not completed yet."""

    code = "JOB_NOT_READY"
    status_code = 409
    message = "Slideshow is not ready for playback"


class InvalidTransitionError(SlideshowError):
    """A terminal job cannot change state again."""

    code = "INVALID_TRANSITION"
    status_code = 409
    message = "Job is already in a terminal state"

    def __init__(self, job_id: str | None = None, target: str | None = None):
        message = self.message
        if job_id and target:
            message = f"Job {job_id} cannot transition to {target}: already terminal"
        super().__init__(message)


class InvalidTokenError(SlideshowError):
    """Temporary or session token is invalid, expired or of the wrong type."""

    code = "INVALID_TOKEN"
    status_code = 401
    message = "Invalid or expired token"


class RangeNotSatisfiableError(SlideshowError):
    """Range header is malformed or outside the artifact."""

    code = "RANGE_NOT_SATISFIABLE"
    status_code = 416
    message = "Requested range not satisfiable"

    def __init__(self, size: int | None = None, message: str | None = None):
        headers = {"Content-Range": f"bytes */{size}"} if size is not None else None
        super().__init__(message, headers=headers)


# =============================================================================
# Pipeline Errors (500/503)
# =============================================================================


class StorageUnavailableError(SlideshowError):
    """Backing storage medium could not be reached."""

    code = "STORAGE_UNAVAILABLE"
    status_code = 503
    message = "Storage is temporarily unavailable"


class MissingSourceError(SlideshowError):
    """A source image is not readable at render time."""

    code = "MISSING_SOURCE"
    status_code = 500
    message = "Source image not found"

    def __init__(self, path: str | None = None):
        message = f"Source image not readable: {path}" if path else self.message
        self.path = path
        super().__init__(message)


class RenderFailureError(SlideshowError):
    """The media tool failed to produce the artifact.

    ``diagnostic`` holds the tool's stderr for operator logs only.
    """

    code = "RENDER_FAILED"
    status_code = 500
    message = "Render failed"

    def __init__(self, message: str | None = None, *, diagnostic: str = ""):
        self.diagnostic = diagnostic
        super().__init__(message)
