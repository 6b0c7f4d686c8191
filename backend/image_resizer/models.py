"""
Image Resizer Models

Request and cache value types shared by the pipeline, cache and routes.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidParameterError

# Plain base-10 integer literal: optional sign, digits only
_INT_PATTERN = re.compile(r"^[+-]?[0-9]+$")


class ImageFormat(str, Enum):
    """Formats the resizer accepts and emits."""
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


def content_type_for(image_format: Optional[str]) -> str:
    """Map a format tag to a Content-Type header value."""
    tag = (image_format or "").lower()
    if tag == "jpg":
        tag = "jpeg"
    try:
        return ImageFormat(tag).content_type
    except ValueError:
        return "application/octet-stream"


def _parse_dimension(field: str, raw: Optional[str]) -> int:
    if raw is None or raw == "":
        raise InvalidParameterError(field, f"missing {field}")
    if not _INT_PATTERN.match(raw):
        raise InvalidParameterError(field, f"couldn't parse {field}: {raw!r} is not an integer")
    value = int(raw)
    if value <= 0:
        raise InvalidParameterError(field, f"{field} must be a positive integer, got {value}")
    return value


@dataclass(frozen=True)
class ImageRequest:
    """A validated resize request."""
    content_id: str
    width: int
    height: int

    @classmethod
    def parse(
        cls,
        content_id: Optional[str],
        width: Optional[str],
        height: Optional[str],
    ) -> "ImageRequest":
        """
        Validate raw query values.

        Raises:
            InvalidParameterError: naming the first failing field
        """
        if content_id is None or not content_id.strip():
            raise InvalidParameterError("cid", "missing cid")

        return cls(
            content_id=content_id,
            width=_parse_dimension("width", width),
            height=_parse_dimension("height", height),
        )

    @property
    def cache_key(self) -> str:
        return f"{self.content_id}_{self.width}x{self.height}"


@dataclass(frozen=True)
class CachedImage:
    """Encoded image bytes tagged with their format."""
    data: bytes
    format: ImageFormat

    @property
    def content_type(self) -> str:
        return self.format.content_type

    @property
    def size_bytes(self) -> int:
        return len(self.data)
