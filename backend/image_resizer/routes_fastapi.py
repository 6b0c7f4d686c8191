"""
Image Resizer API Routes

Provides endpoints for:
- Serving resized images from IPFS content (GET /image)
- Health and cache statistics
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel

from .errors import ImageResizerError, InvalidParameterError
from .models import content_type_for
from .pipeline import ImagePipeline

logger = logging.getLogger(__name__)

BROWSER_CACHE_CONTROL = "public, max-age=86400"  # Browser cache 24h
MISSING_PARAMS_DETAIL = "Missing required query parameters: cid, width, height"
GENERIC_ERROR_DETAIL = "something went wrong"


# ============================================
# Response Models
# ============================================

class CacheStatsResponse(BaseModel):
    """Cache statistics."""
    total_entries: int
    total_size_bytes: int
    total_size_mb: float
    ttl_seconds: float
    sweep_interval_seconds: float
    hits: int
    misses: int


class HealthResponse(BaseModel):
    """Response model for health endpoint."""
    status: str
    service: str
    cache_sweep_running: bool
    cache_stats: CacheStatsResponse


# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Resizer"])


def _pipeline(request: Request) -> ImagePipeline:
    return request.app.state.pipeline


# ============================================
# Endpoints
# ============================================

@router.get("/image")
async def get_image(
    request: Request,
    cid: Optional[str] = Query(None, description="IPFS content identifier"),
    width: Optional[str] = Query(None, description="Bounding box width in pixels"),
    height: Optional[str] = Query(None, description="Bounding box height in pixels"),
):
    """
    Serve an IPFS image fit-resized into width x height.

    Example:
        GET /image?cid=QmXoypiz...&width=400&height=400
    """
    if not cid or not width or not height:
        raise HTTPException(status_code=400, detail=MISSING_PARAMS_DETAIL)

    pipeline = _pipeline(request)

    try:
        image, cache_hit = await pipeline.get_image_with_status(cid, width, height)
    except InvalidParameterError as e:
        logger.info(f"[ImageRoute] Rejected {cid} {width}x{height}: {e}")
        raise HTTPException(status_code=400, detail=e.message)
    except ImageResizerError as e:
        logger.error(f"[ImageRoute] {type(e).__name__} for {cid} {width}x{height}: {e}")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL)
    except Exception:
        logger.exception(f"[ImageRoute] Unexpected error for {cid} {width}x{height}")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL)

    return Response(
        content=image.data,
        media_type=content_type_for(image.format.value),
        headers={
            "Cache-Control": BROWSER_CACHE_CONTROL,
            "X-Cache": "HIT" if cache_hit else "MISS",
        },
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    cache = _pipeline(request).cache
    return HealthResponse(
        status="healthy",
        service="image-resizer",
        cache_sweep_running=cache.is_running,
        cache_stats=CacheStatsResponse(**cache.get_stats()),
    )
