"""PIL geometry helpers used after decode."""

from __future__ import annotations

import io
import math
from typing import Literal, Tuple

from PIL import Image

try:
    Resampling = Image.Resampling  # Pillow >= 9.1
except AttributeError:  # pragma: no cover - for older Pillow
    class Resampling:
        NEAREST = Image.NEAREST
        BILINEAR = Image.BILINEAR
        BICUBIC = Image.BICUBIC
        LANCZOS = Image.LANCZOS


FitMode = Literal["contain", "cover"]


def center_crop(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Return central crop of specified (W,H) size."""

    width, height = image.size
    crop_w, crop_h = size
    if crop_w > width or crop_h > height:
        raise ValueError("Crop size must be <= image size")
    left = (width - crop_w) // 2
    top = (height - crop_h) // 2
    return image.crop((left, top, left + crop_w, top + crop_h))


def contain_size(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """Largest (W,H) with the aspect ratio of `size` that fits inside `box`."""

    width, height = size
    box_w, box_h = box
    scale = min(box_w / width, box_h / height)
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def fit_image(
    image: Image.Image,
    box: Tuple[int, int],
    *,
    mode: FitMode = "contain",
    resample=Resampling.LANCZOS,
) -> Image.Image:
    """Scale `image` against a (W,H) box.

    - "contain": fit entirely inside the box, preserving aspect ratio.
    - "cover": fill the box, preserving aspect ratio, then center-crop to it.
    """

    box_w, box_h = int(box[0]), int(box[1])
    if box_w < 1 or box_h < 1:
        raise ValueError(f"Box must be at least 1x1, got {box_w}x{box_h}")

    if mode == "contain":
        new_size = contain_size(image.size, (box_w, box_h))
        if new_size == image.size:
            return image
        return image.resize(new_size, resample=resample)

    if mode == "cover":
        width, height = image.size
        scale = max(box_w / width, box_h / height)
        new_size = (max(box_w, int(math.ceil(width * scale))), max(box_h, int(math.ceil(height * scale))))
        scaled = image if new_size == image.size else image.resize(new_size, resample=resample)
        return center_crop(scaled, (box_w, box_h))

    raise ValueError(f"Unknown fit mode: {mode!r}. Choose from: contain, cover.")


def zoom_to_byte_budget(image: Image.Image, max_bytes: int, *, resample=Resampling.LANCZOS) -> Image.Image:
    """Shrink `image` so a full-quality JPEG of it is close to `max_bytes`.

    Both sides are divided by ``sqrt(encoded_size / max_bytes)``; the image is
    returned unchanged when it already fits.
    """

    if max_bytes < 1:
        raise ValueError(f"max_bytes must be >= 1, got {max_bytes}")

    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=100)
    encoded_size = buffer.tell()
    if encoded_size <= max_bytes:
        return image

    ratio = math.sqrt(encoded_size / max_bytes)
    width, height = image.size
    new_size = (max(1, int(width / ratio)), max(1, int(height / ratio)))
    return image.resize(new_size, resample=resample)


__all__ = [
    "FitMode",
    "Resampling",
    "center_crop",
    "contain_size",
    "fit_image",
    "zoom_to_byte_budget",
]
