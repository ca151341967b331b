"""Byte-budgeted encoding of decoded images."""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from PIL import Image

from pyimgnorm.decoder import DecodedImage
from pyimgnorm.utils.param_check import check_int

logger = logging.getLogger(__name__)

MAX_QUALITY = 100
DEFAULT_FLOOR_QUALITY = 10
DEFAULT_QUALITY_STEP = 10

Encodable = Union[DecodedImage, Image.Image]


@dataclass(frozen=True)
class CompressionBudget:
    """Target encoded size and how far the quality loop may go to reach it."""

    max_bytes: int
    floor_quality: int = DEFAULT_FLOOR_QUALITY
    step: int = DEFAULT_QUALITY_STEP

    def __post_init__(self) -> None:
        check_int(self.max_bytes, low=1, param_name="max_bytes")
        check_int(self.floor_quality, low=1, high=MAX_QUALITY, param_name="floor_quality")
        check_int(self.step, low=1, param_name="step")

    @property
    def max_attempts(self) -> int:
        return int(math.ceil((MAX_QUALITY - self.floor_quality) / self.step)) + 1

    def fits(self, size: int) -> bool:
        return size <= self.max_bytes


@dataclass
class CompressionResult:
    data: bytes = field(repr=False)
    codec: str
    quality: Optional[int]
    within_budget: bool
    attempts: List[Tuple[Optional[int], int]] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)


def _as_pil(image: Encodable) -> Image.Image:
    if isinstance(image, DecodedImage):
        return image.to_pil()
    if isinstance(image, Image.Image):
        return image
    raise TypeError(f"Expected DecodedImage or PIL.Image.Image, got {type(image).__name__}")


class QualityCompressor:
    """JPEG encoder that lowers quality until the output fits a byte budget.

    Quality starts at 100 and drops by ``budget.step`` (never below
    ``budget.floor_quality``). Every attempt re-encodes the same pixels; the
    image is never decoded again. When the floor is reached and the output is
    still too large, the smallest buffer produced is returned anyway.
    """

    codec = "jpeg"

    def __init__(self, *, optimize: bool = False, progressive: bool = False) -> None:
        self.optimize = bool(optimize)
        self.progressive = bool(progressive)

    def _encode(self, image: Image.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        image.save(
            buffer,
            format="JPEG",
            quality=int(quality),
            optimize=self.optimize,
            progressive=self.progressive,
        )
        return buffer.getvalue()

    def compress_with_report(self, image: Encodable, budget: CompressionBudget) -> CompressionResult:
        pil = _as_pil(image)
        if pil.mode != "RGB":
            pil = pil.convert("RGB")

        quality = MAX_QUALITY
        encoded = self._encode(pil, quality)
        attempts: List[Tuple[Optional[int], int]] = [(quality, len(encoded))]
        best, best_quality = encoded, quality
        logger.debug("JPEG quality=%d -> %d bytes (budget %d)", quality, len(encoded), budget.max_bytes)

        while len(encoded) > budget.max_bytes and quality > budget.floor_quality:
            quality = max(budget.floor_quality, quality - budget.step)
            encoded = self._encode(pil, quality)
            attempts.append((quality, len(encoded)))
            logger.debug("JPEG quality=%d -> %d bytes (budget %d)", quality, len(encoded), budget.max_bytes)
            if len(encoded) <= len(best):
                best, best_quality = encoded, quality

        within_budget = budget.fits(len(best))
        if not within_budget:
            logger.warning(
                "Byte budget unreachable: %d bytes at floor quality %d exceeds %d",
                len(best),
                best_quality,
                budget.max_bytes,
            )
        return CompressionResult(
            data=best,
            codec=self.codec,
            quality=best_quality,
            within_budget=within_budget,
            attempts=attempts,
        )

    def compress(self, image: Encodable, budget: CompressionBudget) -> bytes:
        return self.compress_with_report(image, budget).data


class LosslessCompressor:
    """Single-pass PNG encoder; the budget is reported against, never looped on."""

    codec = "png"

    def __init__(self, *, optimize: bool = True) -> None:
        self.optimize = bool(optimize)

    def compress_with_report(self, image: Encodable, budget: Optional[CompressionBudget] = None) -> CompressionResult:
        pil = _as_pil(image)
        buffer = io.BytesIO()
        pil.save(buffer, format="PNG", optimize=self.optimize)
        data = buffer.getvalue()

        within_budget = budget is None or budget.fits(len(data))
        if not within_budget:
            logger.warning("Byte budget unreachable: PNG is %d bytes, budget %d", len(data), budget.max_bytes)
        return CompressionResult(
            data=data,
            codec=self.codec,
            quality=None,
            within_budget=within_budget,
            attempts=[(None, len(data))],
        )

    def compress(self, image: Encodable, budget: Optional[CompressionBudget] = None) -> bytes:
        return self.compress_with_report(image, budget).data


_COMPRESSORS = {
    "jpeg": QualityCompressor,
    "jpg": QualityCompressor,
    "png": LosslessCompressor,
}


def create_compressor(codec: str = "jpeg") -> Union[QualityCompressor, LosslessCompressor]:
    key = str(codec).strip().lower()
    try:
        factory = _COMPRESSORS[key]
    except KeyError:
        raise ValueError(f"Unknown codec: {codec!r}. Choose from: jpeg, png.") from None
    return factory()


__all__ = [
    "CompressionBudget",
    "CompressionResult",
    "LosslessCompressor",
    "QualityCompressor",
    "create_compressor",
]
