"""
compositor.py — Flattens a preset's rendered layers into one JPEG.

  1 layer   → bytes written as-is (already the final image)
  N layers  → layer[0] is the base; every later layer goes over the running
              result with source-over alpha, anchored at (0, 0), no scaling

Layers are registered to the same size by the picker; an overlay larger than
the base is clipped, a smaller one only covers its own top-left box.

Output: <picture folder>/<picture>_<presetOrdinal>.jpg, JPEG quality 100.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import CompositeError

logger = logging.getLogger(__name__)

JPEG_QUALITY = 100
MATTE_COLOR  = (0, 0, 0)   # alpha left after flattening is dropped onto black, as libvips does


@dataclass
class LayerBuffer:
    data: bytes             # encoded image: raw download or filtered PNG
    source: str             # URL it came from
    filtered: bool = False  # True when a CSS filter was baked in


def artifact_path(folder: Path, preset_ordinal: int) -> Path:
    """<folder>/<folder name>_<ordinal>.jpg, ordinal 1-based."""
    folder = Path(folder)
    return folder / f"{folder.name}_{preset_ordinal}.jpg"


def _decode(buffer: LayerBuffer, index: int) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(buffer.data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise CompositeError(f"layer {index} ({buffer.source}) could not be decoded: {e}") from e
    return img.convert("RGBA")


def _clip_to(overlay: Image.Image, size: Tuple[int, int]) -> Image.Image:
    w = min(overlay.width, size[0])
    h = min(overlay.height, size[1])
    if (w, h) == overlay.size:
        return overlay
    return overlay.crop((0, 0, w, h))


def blend_layers(buffers: Sequence[LayerBuffer]) -> Image.Image:
    """Source-over blend of buffers[1:] onto buffers[0]; returns an RGBA image."""
    if not buffers:
        raise CompositeError("no layers to composite")
    base = _decode(buffers[0], 0)
    for index, buffer in enumerate(buffers[1:], start=1):
        overlay = _clip_to(_decode(buffer, index), base.size)
        base.alpha_composite(overlay, dest=(0, 0))
    return base


def flatten(img: Image.Image, matte: Tuple[int, int, int] = MATTE_COLOR) -> Image.Image:
    """Drop the alpha channel onto an opaque matte."""
    canvas = Image.new("RGB", img.size, matte)
    canvas.paste(img, (0, 0), img)
    return canvas


def composite_layers(
    buffers: Sequence[LayerBuffer],
    output_path: Path,
    quality: int = JPEG_QUALITY,
) -> Path:
    """
    Write the preset's final image to output_path.

    Encoding happens in memory first, so a layer that fails to decode
    leaves no file behind.
    """
    buffers: List[LayerBuffer] = list(buffers)
    output_path = Path(output_path)

    if not buffers:
        raise CompositeError(f"no layers to composite for {output_path.name}")

    if len(buffers) == 1:
        output_path.write_bytes(buffers[0].data)
        logger.info(f"Single layer saved as {output_path.name}")
        return output_path

    merged = flatten(blend_layers(buffers))
    out = io.BytesIO()
    try:
        merged.save(out, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise CompositeError(f"JPEG encode failed for {output_path.name}: {e}") from e

    output_path.write_bytes(out.getvalue())
    logger.info(f"Composited {len(buffers)} layers → {output_path.name}")
    return output_path
