"""
IPFS Image Resizer Server

Wires config, cache, IPFS client and pipeline into a FastAPI app.

Usage:
    cd backend
    python main.py
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from image_resizer import ImagePipeline, IpfsClient, ResizerConfig, ResultCache, router
from image_resizer.pipeline import ContentFetcher

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def create_app(
    config: Optional[ResizerConfig] = None,
    fetcher: Optional[ContentFetcher] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Startup settings (defaults to environment)
        fetcher: Content fetcher override; an IpfsClient is created otherwise
    """
    config = config or ResizerConfig.from_env()

    cache = ResultCache(
        ttl_seconds=config.cache_ttl_seconds,
        sweep_interval_seconds=config.cache_sweep_interval_seconds,
    )
    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = IpfsClient(config.ipfs_api_url, timeout_seconds=config.fetch_timeout_seconds)

    pipeline = ImagePipeline(cache, fetcher, jpeg_quality=config.jpeg_quality)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache.start()
        try:
            yield
        finally:
            await cache.shutdown()
            if owns_fetcher:
                await fetcher.close()

    app = FastAPI(title="IPFS Image Resizer", version="1.0.0", lifespan=lifespan)
    app.state.config = config
    app.state.pipeline = pipeline
    app.include_router(router)
    return app


if __name__ == "__main__":
    config = ResizerConfig.from_env()
    setup_logging(config.log_level)
    logger.info(f"Starting server on port {config.port} (IPFS API: {config.ipfs_api_url})")
    uvicorn.run(create_app(config), host=config.host, port=config.port)
