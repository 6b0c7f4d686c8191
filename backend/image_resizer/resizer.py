"""
Image Resizer Core Logic

Handles:
- Decoding with format sniffing (JPEG, PNG, GIF)
- Fit resizing with Lanczos resampling
- Re-encoding in the source format
- Animated GIFs frame by frame, re-quantized to the Plan 9 palette
"""

import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

from PIL import GifImagePlugin, Image, ImageSequence, UnidentifiedImageError

from .errors import DecodeError, EncodeError, TransformError, UnsupportedFormatError
from .models import CachedImage, ImageFormat

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 85

# Pillow format name -> served format
_SUPPORTED_FORMATS = {
    "JPEG": ImageFormat.JPEG,
    "PNG": ImageFormat.PNG,
    "GIF": ImageFormat.GIF,
    # Multi-picture JPEG (camera MPF); served as a plain JPEG of the primary image
    "MPO": ImageFormat.JPEG,
}

# Modes Pillow can Lanczos-resample directly
_RESAMPLE_MODES = ("L", "LA", "RGB", "RGBA", "CMYK", "I", "F")


def _build_plan9_palette() -> List[int]:
    """
    The 256-color Plan 9 colormap as a flat [r, g, b, ...] list.

    Colors are grouped in 16-entry blocks per (red, value) pair; each block
    is indexed by (value - red + 4*green + blue) mod 16.
    """
    colors = [0] * (256 * 3)
    i = 0
    for r in range(4):
        for v in range(4):
            j = v - r
            for g in range(4):
                for b in range(4):
                    den = max(r, g, b)
                    if den == 0:
                        rgb = (0x11 * v, 0x11 * v, 0x11 * v)
                    else:
                        num = 17 * (4 * den + v)
                        rgb = (r * num // den, g * num // den, b * num // den)
                    index = (i + (j & 0x0F)) * 3
                    colors[index:index + 3] = rgb
                    j += 1
            i += 16
    return colors


PLAN9_PALETTE = _build_plan9_palette()


def _plan9_palette_image() -> Image.Image:
    palette = Image.new("P", (1, 1))
    palette.putpalette(PLAN9_PALETTE)
    return palette


def fit_size(src_width: int, src_height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Largest size with the source aspect ratio that fits in max_width x max_height.

    Images already inside the box keep their size (no upscaling).
    """
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"invalid bounding box {max_width}x{max_height}")
    if src_width <= 0 or src_height <= 0:
        raise ValueError(f"invalid source size {src_width}x{src_height}")

    if src_width <= max_width and src_height <= max_height:
        return src_width, src_height

    # Compare aspect ratios without floating point
    if src_width * max_height > max_width * src_height:
        new_width = max_width
        new_height = src_height * max_width // src_width
    else:
        new_height = max_height
        new_width = src_width * max_height // src_height

    return max(1, new_width), max(1, new_height)


# ============================================
# Decode
# ============================================

def _decode(data: bytes) -> Tuple[Image.Image, ImageFormat]:
    try:
        image = Image.open(BytesIO(data))
    except UnidentifiedImageError as e:
        raise DecodeError("image decode error: unknown format") from e
    except Exception as e:
        raise DecodeError(f"image decode error: {e}") from e

    image_format = _SUPPORTED_FORMATS.get(image.format or "")
    if image_format is None:
        image.close()
        raise UnsupportedFormatError(
            f"unsupported image format: {image.format}",
            {"format": image.format},
        )

    try:
        image.load()
    except Exception as e:
        image.close()
        raise DecodeError(f"image decode error: {e}") from e

    return image, image_format


# ============================================
# Static images
# ============================================

def _resize_frame(image: Image.Image, width: int, height: int) -> Image.Image:
    if image.mode not in _RESAMPLE_MODES:
        if image.mode == "1":
            image = image.convert("L")
        elif image.mode in ("P", "PA") and (image.mode == "PA" or "transparency" in image.info):
            image = image.convert("RGBA")
        elif image.mode == "P":
            image = image.convert("RGB")
        else:
            image = image.convert("RGBA")

    size = fit_size(image.width, image.height, width, height)
    return image.resize(size, Image.Resampling.LANCZOS)


def _encode_static(image: Image.Image, image_format: ImageFormat, jpeg_quality: int) -> bytes:
    output = BytesIO()
    try:
        if image_format is ImageFormat.JPEG:
            if image.mode not in ("L", "RGB", "CMYK"):
                image = image.convert("RGB")
            image.save(output, format="JPEG", quality=jpeg_quality)
        else:
            image.save(output, format="PNG")
    except Exception as e:
        raise EncodeError(f"image encode error: {e}") from e
    return output.getvalue()


# ============================================
# Animated GIF
# ============================================

def _resize_gif(image: Image.Image, width: int, height: int) -> Tuple[List[Image.Image], Dict[str, Any]]:
    """
    Resize every frame of a GIF.

    Each frame is drawn over the running composite, the composite is
    fit-resized, then dithered down to the Plan 9 palette.

    Returns:
        Tuple of (paletted_frames, save_kwargs with timing/disposal/loop)
    """
    palette = _plan9_palette_image()
    loop: Optional[int] = image.info.get("loop")
    canvas = Image.new("RGBA", image.size)

    frames: List[Image.Image] = []
    durations: List[int] = []
    disposals: List[int] = []

    try:
        for frame in ImageSequence.Iterator(image):
            canvas.alpha_composite(frame.convert("RGBA"))
            resized = canvas.resize(
                fit_size(canvas.width, canvas.height, width, height),
                Image.Resampling.LANCZOS,
            )
            frames.append(
                resized.convert("RGB").quantize(
                    palette=palette,
                    dither=Image.Dither.FLOYDSTEINBERG,
                )
            )
            durations.append(int(frame.info.get("duration", 0)))
            disposals.append(int(getattr(frame, "disposal_method", 0)))
    except (OSError, EOFError, SyntaxError) as e:
        raise DecodeError(f"gif frame decode error: {e}") from e

    save_kwargs: Dict[str, Any] = {"duration": durations, "disposal": disposals}
    if loop is not None:
        save_kwargs["loop"] = loop
    return frames, save_kwargs


def _encode_gif(frames: List[Image.Image], save_kwargs: Dict[str, Any]) -> bytes:
    """
    Write the frames as one GIF stream, one image block per frame.

    Pillow's save_all writer folds pixel-identical consecutive frames into
    one and sums their durations, so the stream is assembled from the
    frame-level GifImagePlugin helpers instead. All frames are quantized
    against the same Plan 9 palette, which goes out once as the global
    color table.
    """
    durations = save_kwargs["duration"]
    disposals = save_kwargs["disposal"]

    header_info: Dict[str, Any] = {"optimize": False, "duration": durations[0]}
    if "loop" in save_kwargs:
        header_info["loop"] = save_kwargs["loop"]

    output = BytesIO()
    try:
        header, _ = GifImagePlugin.getheader(frames[0], None, header_info)
        for chunk in header:
            output.write(chunk)
        for frame, duration, disposal in zip(frames, durations, disposals):
            for chunk in GifImagePlugin.getdata(frame, duration=duration, disposal=disposal):
                output.write(chunk)
        output.write(b";")  # trailer
    except Exception as e:
        raise EncodeError(f"image encode error: {e}") from e
    return output.getvalue()


# ============================================
# Entry point
# ============================================

def resize_image(
    data: bytes,
    width: int,
    height: int,
    *,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
) -> CachedImage:
    """
    Fit-resize encoded image bytes, keeping the source format.

    Args:
        data: Encoded JPEG, PNG or GIF bytes
        width: Bounding box width in pixels (> 0)
        height: Bounding box height in pixels (> 0)
        jpeg_quality: Quality used when re-encoding JPEG

    Returns:
        CachedImage with the encoded result and its format

    Raises:
        DecodeError: bytes are not a readable image
        UnsupportedFormatError: image is not JPEG, PNG or GIF
        EncodeError: the result could not be encoded
        TransformError: resampling failed
    """
    if width <= 0 or height <= 0:
        raise TransformError(f"invalid target size {width}x{height}")

    image, image_format = _decode(data)
    source_size = image.size

    try:
        if image_format is ImageFormat.GIF:
            frames, save_kwargs = _resize_gif(image, width, height)
            encoded = _encode_gif(frames, save_kwargs)
            frame_count = len(frames)
        else:
            try:
                resized = _resize_frame(image, width, height)
            except (OSError, ValueError) as e:
                raise TransformError(f"image resize error: {e}") from e
            encoded = _encode_static(resized, image_format, jpeg_quality)
            frame_count = 1
    finally:
        image.close()

    logger.debug(
        f"[Resizer] {image_format.value} {source_size[0]}x{source_size[1]} -> "
        f"fit {width}x{height}, {frame_count} frame(s), {len(data)} -> {len(encoded)} bytes"
    )
    return CachedImage(data=encoded, format=image_format)
