from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from pyimgnorm.errors import UnsupportedFormatError
from pyimgnorm.sources import ImageSource, describe_source, open_source_stream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageBounds:
    """Pixel dimensions of an image, as read from its header."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Bounds must be non-negative, got {self.width}x{self.height}")

    @property
    def pixels(self) -> int:
        return self.width * self.height

    def scaled(self, factor: float) -> "ImageBounds":
        if factor == 1.0:
            return self
        return ImageBounds(
            width=max(1, int(round(self.width * factor))),
            height=max(1, int(round(self.height * factor))),
        )


def density_scale(density_override: Optional[float]) -> float:
    """Scale factor that maps a source authored at `density_override` to baseline density."""

    if density_override is None:
        return 1.0
    density = float(density_override)
    if density <= 0.0:
        raise ValueError(f"density_override must be > 0, got {density_override}")
    return 1.0 / density


def probe_bounds(source: ImageSource, density_override: Optional[float] = None) -> ImageBounds:
    """Read image dimensions from the header only.

    PIL's `Image.open` is lazy, so no pixel buffer is allocated here. The
    source stream is read once and closed before returning.
    """

    scale = density_scale(density_override)
    with open_source_stream(source) as stream:
        try:
            with Image.open(stream) as img:
                width, height = img.size
                fmt = img.format
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise UnsupportedFormatError(f"Unable to parse image header: {describe_source(source)}: {exc}") from exc
        except (OSError, SyntaxError, ValueError) as exc:
            raise UnsupportedFormatError(f"Corrupt image header: {describe_source(source)}: {exc}") from exc

    bounds = ImageBounds(width=int(width), height=int(height)).scaled(scale)
    logger.debug("Probed %s: format=%s bounds=%dx%d", describe_source(source), fmt, bounds.width, bounds.height)
    return bounds


__all__ = ["ImageBounds", "density_scale", "probe_bounds"]
