"""
Image Resizer Module

Serves IPFS-hosted images resized on demand.

Features:
- Fit resizing (JPEG, PNG, animated GIF) with Lanczos resampling
- In-memory cache with sliding expiration and periodic sweep
- Concurrent misses for the same image share one fetch+resize
"""

from .cache_manager import ResultCache
from .config import ResizerConfig
from .ipfs_client import IpfsClient
from .models import CachedImage, ImageFormat, ImageRequest
from .pipeline import ImagePipeline
from .resizer import resize_image
from .routes_fastapi import router

__all__ = [
    "router",
    "ResultCache",
    "ResizerConfig",
    "IpfsClient",
    "CachedImage",
    "ImageFormat",
    "ImageRequest",
    "ImagePipeline",
    "resize_image",
]
