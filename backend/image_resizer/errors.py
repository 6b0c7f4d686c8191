"""
Image Resizer Errors

Exception hierarchy raised by the resize pipeline.
The route layer maps these to HTTP status codes; messages are for logs only,
clients receive a generic body for anything but parameter errors.
"""

from typing import Any, Dict, Optional


class ImageResizerError(Exception):
    """Base class for all image resizer errors."""

    default_message = "Image resizer error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class InvalidParameterError(ImageResizerError):
    """Raised when a request parameter is missing or malformed."""

    default_message = "Invalid request parameter"

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"invalid {field}", {"field": field})


# ============================================
# Fetch errors
# ============================================

class FetchError(ImageResizerError):
    """Raised when the original bytes could not be retrieved."""

    default_message = "Failed to fetch content"


class ContentNotFoundError(FetchError):
    """Raised when the backing store has no content for the id."""

    default_message = "Content not found"


class FetchTimeoutError(FetchError):
    """Raised when the backing store did not answer in time."""

    default_message = "Content fetch timed out"


class FetchConnectionError(FetchError):
    """Raised when the backing store is unreachable."""

    default_message = "Content store unreachable"


# ============================================
# Transform errors
# ============================================

class TransformError(ImageResizerError):
    """Base class for decode/resize/encode failures."""

    default_message = "Image transform failed"


class DecodeError(TransformError):
    """Raised when the input bytes are not a readable image."""

    default_message = "Image decode error"


class UnsupportedFormatError(TransformError):
    """Raised when the input is an image in a format we do not serve."""

    default_message = "Unsupported image format"


class EncodeError(TransformError):
    """Raised when the resized image could not be encoded."""

    default_message = "Image encode error"
