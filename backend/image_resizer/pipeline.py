"""
Image Pipeline

Validate -> cache lookup -> (miss) fetch -> resize -> cache populate.

Concurrent misses for the same key share one in-flight fetch+resize.
Nothing is retried; a failed fetch or transform fails the request and leaves
the cache untouched.
"""

import asyncio
import logging
from typing import Awaitable, Dict, Protocol, Tuple

from .cache_manager import ResultCache
from .errors import FetchError, TransformError
from .models import CachedImage, ImageRequest
from .resizer import DEFAULT_JPEG_QUALITY, resize_image

logger = logging.getLogger(__name__)


class ContentFetcher(Protocol):
    """Anything that can return raw bytes for a content id."""

    def fetch(self, content_id: str) -> Awaitable[bytes]: ...


class ImagePipeline:
    """
    Resize-and-cache orchestrator.

    Usage:
        pipeline = ImagePipeline(cache, IpfsClient(api_url))
        image, cache_hit = await pipeline.get_image_with_status(cid, "400", "300")
    """

    def __init__(
        self,
        cache: ResultCache,
        fetcher: ContentFetcher,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.jpeg_quality = jpeg_quality
        self._inflight: Dict[str, "asyncio.Future[CachedImage]"] = {}

    async def get_image(self, content_id: str, width: str, height: str) -> CachedImage:
        """
        Get a resized image for raw request parameters.

        Raises:
            InvalidParameterError: before any I/O, for bad cid/width/height
            FetchError: the original could not be retrieved
            TransformError: decode, resize or encode failed
        """
        image, _ = await self.get_image_with_status(content_id, width, height)
        return image

    async def get_image_with_status(
        self, content_id: str, width: str, height: str
    ) -> Tuple[CachedImage, bool]:
        """Same as get_image, also reporting whether the cache served it."""
        request = ImageRequest.parse(content_id, width, height)
        key = request.cache_key

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[Pipeline] Cache hit: {key}")
            return cached, True

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_resize(request))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            logger.debug(f"[Pipeline] Joining in-flight request: {key}")

        # Shielded so a cancelled caller does not abort work others wait on
        return await asyncio.shield(task), False

    def _release(self, key: str, task: "asyncio.Future[CachedImage]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away
            task.exception()

    async def _fetch_and_resize(self, request: ImageRequest) -> CachedImage:
        key = request.cache_key
        logger.info(f"[Pipeline] Cache miss, fetching: {request.content_id}")

        try:
            raw = await self.fetcher.fetch(request.content_id)
        except FetchError as e:
            logger.error(f"[Pipeline] Error fetching {request.content_id}: {e} {e.details}")
            raise

        try:
            image = await asyncio.to_thread(
                resize_image,
                raw,
                request.width,
                request.height,
                jpeg_quality=self.jpeg_quality,
            )
        except TransformError as e:
            logger.error(f"[Pipeline] Error resizing {key}: {type(e).__name__}: {e}")
            raise

        self.cache.set(key, image)
        logger.info(
            f"[Pipeline] Resized {key} ({image.format.value}, "
            f"{len(raw)} -> {image.size_bytes} bytes)"
        )
        return image
