"""
Image Resizer Configuration

Startup settings read from the environment once; not hot-reloadable.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_IPFS_API_URL = "http://127.0.0.1:5001"


def _multiaddr_to_url(multiaddr: str) -> Optional[str]:
    """
    Convert an IPFS API multiaddr to an HTTP base URL.

    "/ip4/127.0.0.1/tcp/5001" -> "http://127.0.0.1:5001"
    """
    parts = [p for p in multiaddr.strip().split("/") if p]
    if len(parts) < 4 or parts[2] != "tcp":
        return None

    proto, host, _, port = parts[:4]
    if proto == "ip6":
        host = f"[{host}]"
    elif proto not in ("ip4", "dns", "dns4", "dns6"):
        return None
    return f"http://{host}:{port}"


def resolve_ipfs_api_url() -> str:
    """
    Find the IPFS node's RPC address.

    Order:
      1) IPFS_API_URL env var
      2) multiaddr in $IPFS_PATH/api (default ~/.ipfs/api), written by a running daemon
      3) http://127.0.0.1:5001
    """
    explicit = os.getenv("IPFS_API_URL")
    if explicit:
        return explicit.rstrip("/")

    repo = Path(os.getenv("IPFS_PATH", "~/.ipfs")).expanduser()
    api_file = repo / "api"
    if api_file.is_file():
        url = _multiaddr_to_url(api_file.read_text())
        if url:
            return url

    return DEFAULT_IPFS_API_URL


@dataclass
class ResizerConfig:
    """Process configuration."""
    # Server
    host: str = "0.0.0.0"
    port: int = 9191

    # Cache
    cache_ttl_seconds: float = 12 * 60 * 60             # 12 hours from last read
    cache_sweep_interval_seconds: float = 24 * 60 * 60  # 24 hours

    # IPFS
    ipfs_api_url: str = field(default_factory=resolve_ipfs_api_url)
    fetch_timeout_seconds: float = 45.0

    # Encoding
    jpeg_quality: int = 85

    log_level: str = "INFO"

    def __post_init__(self):
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache TTL must be positive")
        if self.cache_sweep_interval_seconds <= 0:
            raise ValueError("cache sweep interval must be positive")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch timeout must be positive")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg quality must be within 1-100")

    @classmethod
    def from_env(cls) -> "ResizerConfig":
        """Build config from IMAGE_RESIZER_* environment variables."""
        defaults = cls.__dataclass_fields__
        return cls(
            host=os.getenv("IMAGE_RESIZER_HOST", defaults["host"].default),
            port=int(os.getenv("IMAGE_RESIZER_PORT", str(defaults["port"].default))),
            cache_ttl_seconds=float(os.getenv(
                "IMAGE_RESIZER_CACHE_TTL_SECONDS",
                str(defaults["cache_ttl_seconds"].default),
            )),
            cache_sweep_interval_seconds=float(os.getenv(
                "IMAGE_RESIZER_CACHE_SWEEP_SECONDS",
                str(defaults["cache_sweep_interval_seconds"].default),
            )),
            ipfs_api_url=resolve_ipfs_api_url(),
            fetch_timeout_seconds=float(os.getenv(
                "IMAGE_RESIZER_FETCH_TIMEOUT_SECONDS",
                str(defaults["fetch_timeout_seconds"].default),
            )),
            jpeg_quality=int(os.getenv(
                "IMAGE_RESIZER_JPEG_QUALITY",
                str(defaults["jpeg_quality"].default),
            )),
            log_level=os.getenv("LOG_LEVEL", defaults["log_level"].default).upper(),
        )
