"""Photo compression to a bounded payload size.

Photos travel as data URLs (``data:image/jpeg;base64,...``). Before upload
they are downscaled to at most 1200px on the longer side and re-encoded as
JPEG, first at quality 0.7 and then, if still too large, with a binary search
over quality until the encoded size lands within 1KB of the target or the
attempt budget runs out.
"""

import asyncio
import base64
import binascii
import io
import logging
import math
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_KB = 100
MAX_DIMENSION = 1200
INITIAL_QUALITY = 0.7
MIN_QUALITY = 0.1
MAX_ATTEMPTS = 10
# Sizes closer than this to the target end the search
SIZE_TOLERANCE_KB = 1


class ImageCompressionError(Exception):
    """Raised when a payload cannot be decoded or re-encoded."""

    pass


@dataclass
class CompressionResult:
    """Outcome of a compression run.

    Attributes:
        payload: Re-encoded JPEG data URL.
        size_kb: Encoded size as computed by :func:`payload_size_kb`.
        quality: JPEG quality (0-1) of the returned payload.
        attempts: Binary search encodes performed (0 if the first encode fit).
    """

    payload: str
    size_kb: float
    quality: float
    attempts: int


def payload_size_kb(payload: str) -> float:
    """Size in KB of the binary data behind a base64 data URL.

    Args:
        payload: Data URL.

    Returns:
        float: ``ceil(len(base64) * 3 / 4) / 1024``.
    """
    _, _, data = payload.partition(",")
    return math.ceil(len(data) * 3 / 4) / 1024


def is_raw_payload(photo: str, prefix: str = "data:image") -> bool:
    """Whether a photo is an embedded payload rather than a hosted URL."""
    return photo.startswith(prefix)


def decode_payload(payload: str) -> Image.Image:
    """Decode a base64 data URL into a loaded Pillow image.

    Raises:
        ImageCompressionError: If the payload is not a decodable image.
    """
    header, sep, data = payload.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ImageCompressionError("Failed to load image: not a base64 data URL")

    try:
        raw = base64.b64decode(data, validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, ValueError, OSError, Image.DecompressionBombError) as e:
        raise ImageCompressionError(f"Failed to load image: {e}") from e
    return image


def target_dimensions(width: int, height: int, limit: int = MAX_DIMENSION) -> tuple[int, int]:
    """Scale dimensions so the longer side is at most ``limit``.

    Aspect ratio is preserved; images already within the limit are unchanged.
    """
    if width > height:
        if width > limit:
            height = round(height * limit / width)
            width = limit
    elif height > limit:
        width = round(width * limit / height)
        height = limit
    return width, height


def prepare_surface(image: Image.Image) -> Image.Image:
    """Produce the RGB drawing surface that every encode attempt reads from.

    EXIF orientation is applied first, since the re-encoded JPEG carries no
    orientation tag.

    Raises:
        ImageCompressionError: If the image cannot be converted or resized.
    """
    try:
        upright = ImageOps.exif_transpose(image)
        size = target_dimensions(*upright.size)
        surface = upright.convert("RGB")
        if size != surface.size:
            surface = surface.resize(size, Image.Resampling.LANCZOS)
    except (OSError, ValueError) as e:
        raise ImageCompressionError(f"Failed to get rendering surface: {e}") from e
    return surface


def encode_jpeg(surface: Image.Image, quality: float) -> str:
    """Encode a surface as a JPEG data URL.

    Args:
        surface: RGB image.
        quality: Quality between 0 and 1.

    Returns:
        str: ``data:image/jpeg;base64,...`` payload.
    """
    buffer = io.BytesIO()
    try:
        surface.save(buffer, format="JPEG", quality=max(1, round(quality * 100)))
    except (OSError, ValueError) as e:
        raise ImageCompressionError(f"Failed to encode image: {e}") from e
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


async def compress_image_with_stats(
    payload: str,
    max_size_kb: float = DEFAULT_MAX_SIZE_KB,
) -> CompressionResult:
    """Compress a photo and report how the result was reached.

    Each encode runs in a worker thread and finishes before the next starts,
    keeping the event loop responsive during the search.

    Args:
        payload: Source image as a data URL.
        max_size_kb: Target maximum size in KB.

    Returns:
        CompressionResult: Best payload found. It is within target unless all
        ``MAX_ATTEMPTS`` encodes were spent without getting there. An
        exhausted search does not return its final attempt: it returns the
        largest result within target, or the smallest result seen if none fit.

    Raises:
        ImageCompressionError: If the source cannot be decoded or rendered.
    """
    image = await asyncio.to_thread(decode_payload, payload)
    surface = await asyncio.to_thread(prepare_surface, image)

    quality = INITIAL_QUALITY
    compressed = await asyncio.to_thread(encode_jpeg, surface, quality)
    size = payload_size_kb(compressed)

    if size <= max_size_kb:
        return CompressionResult(compressed, size, quality, 0)

    low, high = MIN_QUALITY, INITIAL_QUALITY
    smallest = CompressionResult(compressed, size, quality, 0)
    best_fit: CompressionResult | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        quality = (low + high) / 2
        compressed = await asyncio.to_thread(encode_jpeg, surface, quality)
        size = payload_size_kb(compressed)
        result = CompressionResult(compressed, size, quality, attempt)

        if abs(size - max_size_kb) < SIZE_TOLERANCE_KB:
            return result

        if size > max_size_kb:
            high = quality
            if size < smallest.size_kb:
                smallest = result
        else:
            low = quality
            if best_fit is None or size > best_fit.size_kb:
                best_fit = result

    chosen = best_fit or smallest
    logger.debug(
        f"Compression budget exhausted; keeping {chosen.size_kb:.1f}KB at quality {chosen.quality:.3f}"
    )
    return CompressionResult(chosen.payload, chosen.size_kb, chosen.quality, MAX_ATTEMPTS)


async def compress_image(payload: str, max_size_kb: float = DEFAULT_MAX_SIZE_KB) -> str:
    """Compress a photo payload to roughly ``max_size_kb``.

    Args:
        payload: Source image as a data URL.
        max_size_kb: Target maximum size in KB.

    Returns:
        str: JPEG data URL.

    Raises:
        ImageCompressionError: If the source cannot be decoded or rendered.
    """
    result = await compress_image_with_stats(payload, max_size_kb)
    return result.payload


def file_to_data_url(path: Path | str) -> str:
    """Read an image file into a data URL.

    Args:
        path: Image file path.

    Returns:
        str: Base64 data URL with a MIME type guessed from the file name.

    Raises:
        ImageCompressionError: If the file cannot be read.
    """
    path = Path(path)
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageCompressionError(f"Failed to convert file to data URL: {e}") from e
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
