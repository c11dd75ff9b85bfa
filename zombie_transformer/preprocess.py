"""Resize uploads to an engine-supported size before sending them upstream."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .dimensions import Dimensions, match_dimensions
from .errors import DecodeError

logger = logging.getLogger("zombie_transformer.preprocess")


@dataclass(frozen=True)
class PreparedImage:
    data: bytes
    size: Dimensions
    original_size: Dimensions
    media_type: str = "image/png"


def fit_cover(image: Image.Image, size: Dimensions) -> Image.Image:
    """Scale ``image`` to fill ``size`` without stretching, then crop the overflow around the centre."""
    target_w, target_h = size
    w, h = image.size

    scale = max(target_w / w, target_h / h)
    if scale != 1:
        # round up so the scaled image never falls a pixel short of the box
        new_size = (max(target_w, round(w * scale)), max(target_h, round(h * scale)))
        image = image.resize(new_size, Image.LANCZOS)

    left = (image.width - target_w) // 2
    top = (image.height - target_h) // 2
    return image.crop((left, top, left + target_w, top + target_h))


def prepare_image(path: Path, size: Optional[Dimensions] = None) -> PreparedImage:
    """Decode the image at ``path``, cover-fit it to ``size`` (or the nearest supported size) and encode PNG."""
    try:
        with Image.open(path) as source:
            source.load()
            # phone cameras store portraits sideways with an Orientation tag
            image = ImageOps.exif_transpose(source)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGB")
            original_size = image.size
            target = size or match_dimensions(*original_size)
            fitted = fit_cover(image, target)
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Could not read image {Path(path).name}: {e}", source=str(path)) from e

    buffer = io.BytesIO()
    fitted.save(buffer, format="PNG")
    logger.info("Resized %s from %dx%d to %dx%d", Path(path).name, *original_size, *target)
    return PreparedImage(data=buffer.getvalue(), size=target, original_size=original_size)
