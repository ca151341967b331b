"""Sampled, format-aware decoding of image sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from pyimgnorm.bounds import ImageBounds, density_scale
from pyimgnorm.errors import MemoryExhaustedError, UnsupportedFormatError
from pyimgnorm.inputs import PixelFormat, parse_pixel_format, pixels_from_pil, unpack_rgb565
from pyimgnorm.sources import ImageSource, describe_source, open_source_stream
from pyimgnorm.utils.image_ops import Resampling
from pyimgnorm.utils.param_check import check_parameter, check_power_of_two

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeConfig:
    """How to materialize pixels.

    Parameters
    ----------
    sample_size:
        Power-of-two downsample factor; 1 decodes at full size.
    pixel_format:
        Pixel representation of the decoded buffer.
    density_override:
        Density the source was authored at (1.0 = baseline). The decoded
        image is scaled by ``1 / density_override``.
    """

    sample_size: int = 1
    pixel_format: PixelFormat = PixelFormat.HIGH_FIDELITY
    density_override: Optional[float] = None

    def __post_init__(self) -> None:
        check_power_of_two(self.sample_size, param_name="sample_size")
        object.__setattr__(self, "pixel_format", parse_pixel_format(self.pixel_format))
        if self.density_override is not None:
            check_parameter(self.density_override, low=0.0, include_left=False, param_name="density_override")

    def degraded(self) -> "DecodeConfig":
        """Same sample size and density, low-memory pixel format."""

        return replace(self, pixel_format=PixelFormat.LOW_MEMORY)


@dataclass
class DecodedImage:
    """A decoded pixel buffer and the format it is laid out in."""

    pixels: np.ndarray = field(repr=False)
    pixel_format: PixelFormat
    sample_size: int = 1
    source_bounds: Optional[ImageBounds] = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def nbytes(self) -> int:
        return int(self.pixels.nbytes)

    def to_pil(self) -> Image.Image:
        if self.pixel_format is PixelFormat.HIGH_FIDELITY:
            return Image.fromarray(self.pixels)
        return Image.fromarray(unpack_rgb565(self.pixels))

    @classmethod
    def from_pil(cls, image: Image.Image, pixel_format: PixelFormat, **kwargs) -> "DecodedImage":
        return cls(pixels=pixels_from_pil(image, pixel_format), pixel_format=pixel_format, **kwargs)


_REDUCIBLE_MODES = {"L", "LA", "RGB", "RGBA", "I", "F"}


def _apply_sample_size(img: Image.Image, sample_size: int, mode: str) -> Image.Image:
    if sample_size == 1:
        img.load()
        return img

    src_w, src_h = img.size
    target = (max(1, src_w // sample_size), max(1, src_h // sample_size))
    # JPEG decodes directly at 1/2, 1/4 or 1/8 scale; other codecs ignore this.
    img.draft(None, target)
    img.load()

    applied = max(1, int(round(src_w / img.width)))
    remaining = max(1, sample_size // applied)
    if remaining > 1:
        if img.mode not in _REDUCIBLE_MODES:
            img = img.convert(mode)
        img = img.reduce(remaining)
    return img


def _apply_density(img: Image.Image, density_override: Optional[float]) -> Image.Image:
    scale = density_scale(density_override)
    if scale == 1.0:
        return img
    scaled = ImageBounds(img.width, img.height).scaled(scale)
    return img.resize((scaled.width, scaled.height), resample=Resampling.LANCZOS)


def decode_source(source: ImageSource, config: Optional[DecodeConfig] = None) -> DecodedImage:
    """Decode `source` into a `DecodedImage` according to `config`.

    The source stream is closed before this function returns, on success and
    on every error path.

    Raises
    ------
    EmptySourceError
        The source carries no data.
    UnreadableSourceError
        The source could not be opened.
    MemoryExhaustedError
        Pixel allocation failed; a cheaper pixel format may succeed.
    UnsupportedFormatError
        The data is not a decodable image.
    """

    config = config or DecodeConfig()
    label = describe_source(source)

    with open_source_stream(source) as stream:
        try:
            with Image.open(stream) as opened:
                source_bounds = ImageBounds(*opened.size)
                img = _apply_sample_size(opened, config.sample_size, config.pixel_format.pil_mode)
                img = _apply_density(img, config.density_override)
                decoded = DecodedImage.from_pil(
                    img,
                    config.pixel_format,
                    sample_size=config.sample_size,
                    source_bounds=source_bounds,
                )
        except MemoryError as exc:
            raise MemoryExhaustedError(
                f"Out of memory decoding {label} as {config.pixel_format.value} (sample_size={config.sample_size})"
            ) from exc
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise UnsupportedFormatError(f"Unrecognized image data: {label}: {exc}") from exc
        except (OSError, SyntaxError, ValueError) as exc:
            raise UnsupportedFormatError(f"Unable to decode {label}: {exc}") from exc

    logger.debug(
        "Decoded %s: %dx%d -> %dx%d format=%s sample_size=%d (%d bytes)",
        label,
        source_bounds.width,
        source_bounds.height,
        decoded.width,
        decoded.height,
        decoded.pixel_format.value,
        config.sample_size,
        decoded.nbytes,
    )
    return decoded


__all__ = ["DecodeConfig", "DecodedImage", "decode_source"]
