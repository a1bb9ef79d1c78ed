"""
Horizontal border cropping for captured manga pages.

Screenshots of web readers usually carry black or dark grey padding on the
left and right of the page spread. Those columns are detected on an analysis
copy (down-scaled when wider than ``ANALYSIS_MAX_WIDTH``) and the crop is then
applied to the full-resolution original, so no detail is lost.

Only columns are trimmed; vertical padding is left alone.
"""
from __future__ import annotations

import io
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image

# Wider captures are down-scaled to this width for the column scan
ANALYSIS_MAX_WIDTH = 1920

DEFAULT_THRESHOLD = 60
DEFAULT_QUALITY = 0.5


@dataclass(frozen=True)
class CropBounds:
    """Inclusive column range to keep."""
    min_column: int
    max_column: int

    @property
    def width(self) -> int:
        return self.max_column - self.min_column + 1


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded Pillow image."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def encode_jpeg(image: Image.Image, quality: float = DEFAULT_QUALITY) -> bytes:
    """
    Encode as JPEG.

    Args:
        image: Image to encode (converted to RGB if needed)
        quality: 0..1, mapped onto Pillow's 1..95 scale
    """
    if image.mode != "RGB":
        image = image.convert("RGB")
    pil_quality = max(1, min(95, int(round(quality * 100))))
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=pil_quality)
    return buf.getvalue()


def analysis_copy(image: Image.Image) -> Tuple[Image.Image, float]:
    """Return (image used for scanning, scale relative to the original)."""
    if image.width <= ANALYSIS_MAX_WIDTH:
        return image, 1.0
    scale = ANALYSIS_MAX_WIDTH / image.width
    height = max(1, int(round(image.height * scale)))
    return image.resize((ANALYSIS_MAX_WIDTH, height), Image.Resampling.BILINEAR), scale


def content_columns(image: Image.Image, threshold: int) -> np.ndarray:
    """
    Boolean mask over columns: True where any pixel's RGB mean exceeds threshold.
    """
    rgb = np.asarray(image.convert("RGB"), dtype=np.uint16)
    # mean(r, g, b) > t  <=>  r + g + b > 3t, kept in integers
    bright = rgb.sum(axis=2) > threshold * 3
    return bright.any(axis=0)


def find_crop_bounds(image: Image.Image, threshold: int) -> Optional[CropBounds]:
    """
    Locate the first content column from each side.

    Returns None when the image has no content column at all.
    """
    hits = np.flatnonzero(content_columns(image, threshold))
    if hits.size == 0:
        return None
    return CropBounds(min_column=int(hits[0]), max_column=int(hits[-1]))


def _column_hits(image: Image.Image, threshold: int, start: int, stop: int) -> np.ndarray:
    """Absolute indices of content columns in ``image`` within [start, stop)."""
    if stop <= start:
        return np.empty(0, dtype=np.intp)
    strip = image.crop((start, 0, stop, image.height))
    return np.flatnonzero(content_columns(strip, threshold)) + start


def refine_bounds(
    image: Image.Image,
    threshold: int,
    bounds: CropBounds,
    scale: float,
) -> Optional[CropBounds]:
    """
    Map analysis-copy bounds onto ``image`` and snap them to its own pixels.

    Resampling blurs the edge columns, so the mapped edges can be off by a
    few pixels. Each edge is re-scanned on the original, from the image
    border inward to a margin past the mapped edge; only the padding strips
    are read. Falls back to a full scan when a strip has no content.
    """
    margin = 2 * math.ceil(1 / scale)
    left = int(bounds.min_column / scale)
    right = min(image.width, left + max(1, int(round(bounds.width / scale)))) - 1

    left_hits = _column_hits(image, threshold, 0, min(image.width, left + margin + 1))
    right_hits = _column_hits(image, threshold, max(0, right - margin), image.width)
    if left_hits.size and right_hits.size and left_hits[0] <= right_hits[-1]:
        return CropBounds(min_column=int(left_hits[0]), max_column=int(right_hits[-1]))
    return find_crop_bounds(image, threshold)


def crop_black_edges(image: Image.Image, threshold: int = DEFAULT_THRESHOLD) -> Image.Image:
    """
    Remove dark left/right padding from ``image``.

    The original image object is returned untouched when nothing brighter
    than ``threshold`` exists. Otherwise a new image is returned with the
    full original height and resolution.
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"threshold must be within 0..255, got {threshold}")

    analysis, scale = analysis_copy(image)
    bounds = find_crop_bounds(analysis, threshold)
    if bounds is None:
        return image
    if scale < 1.0:
        bounds = refine_bounds(image, threshold, bounds, scale)
        if bounds is None:
            return image

    return image.crop((bounds.min_column, 0, bounds.max_column + 1, image.height))
