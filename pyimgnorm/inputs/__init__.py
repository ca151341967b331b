"""Pixel buffer formats.

Decoded images are held as numpy arrays in one of two explicit layouts. The
layout is always declared by a `PixelFormat`, never guessed from the array.
"""

from __future__ import annotations

from .pixel_format import (
    PixelFormat,
    pack_rgb565,
    parse_pixel_format,
    pixels_from_pil,
    unpack_rgb565,
)

__all__ = [
    "PixelFormat",
    "pack_rgb565",
    "parse_pixel_format",
    "pixels_from_pil",
    "unpack_rgb565",
]
