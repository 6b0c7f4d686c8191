"""
Image Resizer test configuration

Shared fixtures and helpers:
- Pillow-generated JPEG / PNG / GIF bytes
- A manual clock for cache expiry tests
- An in-memory content fetcher that counts calls
"""

import asyncio
import sys
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

# Add backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from image_resizer.cache_manager import ResultCache
from image_resizer.errors import ContentNotFoundError, FetchError


# ============================================
# Image helpers
# ============================================

def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "PNG",
    color: Tuple[int, int, int] = (255, 0, 0),
) -> bytes:
    """Create a solid-color image in the given format."""
    img = Image.new("RGB", (width, height), color=color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_gif_bytes(
    width: int,
    height: int,
    colors: Sequence[Tuple[int, int, int]] = ((255, 0, 0), (0, 255, 0), (0, 0, 255)),
    durations: Sequence[int] = (100, 200, 300),
    loop: Optional[int] = 0,
) -> bytes:
    """Create an animated GIF with one solid frame per color."""
    frames = [Image.new("RGB", (width, height), color=c) for c in colors]
    kwargs = {"duration": list(durations)}
    if loop is not None:
        kwargs["loop"] = loop
    buf = BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], **kwargs)
    return buf.getvalue()


def open_image(data: bytes) -> Image.Image:
    return Image.open(BytesIO(data))


# ============================================
# Test doubles
# ============================================

class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """
    In-memory content store.

    Unknown ids raise ContentNotFoundError; ids in `failures` raise the
    mapped exception.
    """

    def __init__(self, contents: Optional[Dict[str, bytes]] = None, delay: float = 0.0):
        self.contents = dict(contents or {})
        self.failures: Dict[str, FetchError] = {}
        self.delay = delay
        self.calls: List[str] = []
        self.closed = False

    async def fetch(self, content_id: str) -> bytes:
        self.calls.append(content_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if content_id in self.failures:
            raise self.failures[content_id]
        if content_id not in self.contents:
            raise ContentNotFoundError(f"cat {content_id}: not found")
        return self.contents[content_id]

    async def close(self) -> None:
        self.closed = True


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cache(clock):
    """Cache with a 60s TTL and a 300s sweep interval on a manual clock."""
    return ResultCache(ttl_seconds=60, sweep_interval_seconds=300, clock=clock)


@pytest.fixture
def png_800x600():
    return make_image_bytes(800, 600, "PNG")


@pytest.fixture
def fetcher(png_800x600):
    return FakeFetcher({
        "Qm123": png_800x600,
        "QmJpeg": make_image_bytes(640, 480, "JPEG", color=(10, 120, 200)),
        "QmGif": make_gif_bytes(200, 150),
        "QmText": b"hello, this is not an image",
        "QmBmp": make_image_bytes(50, 50, "BMP"),
    })
