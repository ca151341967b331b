from __future__ import annotations

from enum import Enum
from typing import Any

import numpy as np


class PixelFormat(str, Enum):
    """Decoded pixel representations.

    - HIGH_FIDELITY: RGBA, uint8, HWC (32 bits per pixel, with alpha)
    - LOW_MEMORY: RGB565 packed into uint16, HW (16 bits per pixel, no alpha)
    """

    HIGH_FIDELITY = "high_fidelity"
    LOW_MEMORY = "low_memory"

    @property
    def bits_per_pixel(self) -> int:
        return 32 if self is PixelFormat.HIGH_FIDELITY else 16

    @property
    def has_alpha(self) -> bool:
        return self is PixelFormat.HIGH_FIDELITY

    @property
    def pil_mode(self) -> str:
        """PIL mode the decoder converts to before packing."""

        return "RGBA" if self is PixelFormat.HIGH_FIDELITY else "RGB"


def parse_pixel_format(raw: str | PixelFormat) -> PixelFormat:
    if isinstance(raw, PixelFormat):
        return raw
    try:
        return PixelFormat(str(raw))
    except Exception as exc:  # noqa: BLE001 - value validation helper
        raise ValueError(f"Unknown pixel format: {raw!r}") from exc


def _require_ndarray(image: Any) -> np.ndarray:
    if not isinstance(image, np.ndarray):
        raise TypeError(f"Expected np.ndarray, got {type(image)}")
    return image


def pack_rgb565(rgb: Any) -> np.ndarray:
    """Pack an (H,W,3) uint8 RGB array into an (H,W) uint16 RGB565 array."""

    arr = _require_ndarray(rgb)
    if arr.dtype != np.uint8:
        raise ValueError(f"Expected dtype=uint8, got {arr.dtype}")
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"Expected shape (H,W,3), got {arr.shape}")

    r = (arr[..., 0] >> 3).astype(np.uint16)
    g = (arr[..., 1] >> 2).astype(np.uint16)
    b = (arr[..., 2] >> 3).astype(np.uint16)
    return np.ascontiguousarray((r << 11) | (g << 5) | b)


def unpack_rgb565(packed: Any) -> np.ndarray:
    """Expand an (H,W) uint16 RGB565 array back to (H,W,3) uint8 RGB.

    Low bits are filled by replicating the high bits, so pure white and black
    survive the round trip exactly.
    """

    arr = _require_ndarray(packed)
    if arr.dtype != np.uint16:
        raise ValueError(f"Expected dtype=uint16, got {arr.dtype}")
    if arr.ndim != 2:
        raise ValueError(f"Expected shape (H,W), got {arr.shape}")

    r5 = (arr >> 11) & 0x1F
    g6 = (arr >> 5) & 0x3F
    b5 = arr & 0x1F
    r = (r5 << 3) | (r5 >> 2)
    g = (g6 << 2) | (g6 >> 4)
    b = (b5 << 3) | (b5 >> 2)
    return np.ascontiguousarray(np.stack([r, g, b], axis=-1).astype(np.uint8))


def pixels_from_pil(image: Any, pixel_format: PixelFormat) -> np.ndarray:
    """Convert a loaded PIL image into the pixel buffer for `pixel_format`."""

    converted = image if image.mode == pixel_format.pil_mode else image.convert(pixel_format.pil_mode)
    arr = np.asarray(converted, dtype=np.uint8)
    if pixel_format is PixelFormat.HIGH_FIDELITY:
        return np.ascontiguousarray(arr)
    if pixel_format is PixelFormat.LOW_MEMORY:
        return pack_rgb565(arr)
    raise RuntimeError(f"Unhandled pixel format: {pixel_format}")
