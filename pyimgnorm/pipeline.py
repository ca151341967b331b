"""Bounded-memory image normalization.

`ImageNormalizer` chains the header probe, the sample-size decision, the
decoder and the compressor. A decode that runs out of memory is retried
exactly once with the low-memory pixel format and the same sample size; any
other failure propagates to the caller unchanged.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pyimgnorm.bounds import ImageBounds, probe_bounds
from pyimgnorm.capabilities import release_cached_blocks
from pyimgnorm.compress import CompressionBudget, CompressionResult, create_compressor
from pyimgnorm.decoder import DecodeConfig, DecodedImage, decode_source
from pyimgnorm.errors import MemoryExhaustedError
from pyimgnorm.inputs import PixelFormat
from pyimgnorm.sampling import compute_sample_size
from pyimgnorm.sources import ImageSource, describe_source
from pyimgnorm.utils.image_ops import FitMode, fit_image, zoom_to_byte_budget

logger = logging.getLogger(__name__)

ProbeFn = Callable[[ImageSource, Optional[float]], ImageBounds]
DecodeFn = Callable[[ImageSource, DecodeConfig], DecodedImage]


class NormalizeState(str, Enum):
    PROBING = "probing"
    SIZING_DECIDED = "sizing_decided"
    DECODING = "decoding"
    DECODE_FAILED = "decode_failed"
    DECODED = "decoded"
    COMPRESSING = "compressing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class NormalizeResult:
    data: bytes = field(repr=False)
    probed_bounds: ImageBounds
    sample_size: int
    pixel_format: PixelFormat
    output_size: Tuple[int, int]
    compression: CompressionResult
    decode_attempts: int
    states: List[NormalizeState] = field(default_factory=list)

    @property
    def within_budget(self) -> bool:
        return self.compression.within_budget

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the encoded bytes (for JSON reports)."""

        return {
            "probed_bounds": {"width": self.probed_bounds.width, "height": self.probed_bounds.height},
            "sample_size": self.sample_size,
            "pixel_format": self.pixel_format.value,
            "output_size": {"width": self.output_size[0], "height": self.output_size[1]},
            "codec": self.compression.codec,
            "quality": self.compression.quality,
            "bytes": self.compression.size,
            "within_budget": self.compression.within_budget,
            "attempts": [{"quality": q, "bytes": n} for q, n in self.compression.attempts],
            "decode_attempts": self.decode_attempts,
            "states": [s.value for s in self.states],
        }


def _replace_pixels(decoded: DecodedImage, image) -> DecodedImage:
    return DecodedImage.from_pil(
        image,
        decoded.pixel_format,
        sample_size=decoded.sample_size,
        source_bounds=decoded.source_bounds,
    )


class ImageNormalizer:
    """Probe -> size -> decode (one low-memory retry) -> compress.

    Parameters
    ----------
    codec:
        "jpeg" (quality loop against the budget) or "png" (single pass).
    probe / decoder:
        Injectable stages; default to `probe_bounds` and `decode_source`.
    """

    def __init__(
        self,
        *,
        codec: str = "jpeg",
        probe: Optional[ProbeFn] = None,
        decoder: Optional[DecodeFn] = None,
    ) -> None:
        self.codec = str(codec).lower()
        self.compressor = create_compressor(self.codec)
        self.probe = probe or probe_bounds
        self.decoder = decoder or decode_source

    def _decode_with_retry(
        self,
        source: ImageSource,
        config: DecodeConfig,
        states: List[NormalizeState],
    ) -> Tuple[DecodedImage, int]:
        states.append(NormalizeState.DECODING)
        try:
            return self.decoder(source, config), 1
        except MemoryExhaustedError as exc:
            states.append(NormalizeState.DECODE_FAILED)
            logger.warning(
                "Decode of %s ran out of memory at sample_size=%d (%s); retrying with %s",
                describe_source(source),
                config.sample_size,
                exc,
                PixelFormat.LOW_MEMORY.value,
            )

        release_cached_blocks()
        return self.decoder(source, config.degraded()), 2

    def normalize(
        self,
        source: ImageSource,
        target_width: int,
        target_height: int,
        budget: Optional[CompressionBudget] = None,
        density_override: Optional[float] = None,
        *,
        fit: Optional[FitMode] = None,
        zoom_to_budget: bool = False,
    ) -> NormalizeResult:
        """Run the full pipeline and return the encoded bytes with a trace.

        ``fit`` rescales the decoded image against the target box ("contain"
        or "cover"). ``zoom_to_budget`` shrinks the image by the square root
        of its full-quality overshoot before the quality loop runs.
        """

        states: List[NormalizeState] = [NormalizeState.PROBING]
        try:
            bounds = self.probe(source, density_override)

            sample_size = compute_sample_size(bounds, target_width, target_height)
            states.append(NormalizeState.SIZING_DECIDED)

            config = DecodeConfig(sample_size=sample_size, density_override=density_override)
            decoded, attempts = self._decode_with_retry(source, config, states)
            states.append(NormalizeState.DECODED)

            if fit is not None:
                decoded = _replace_pixels(
                    decoded, fit_image(decoded.to_pil(), (target_width, target_height), mode=fit)
                )
            if zoom_to_budget and budget is not None:
                decoded = _replace_pixels(decoded, zoom_to_byte_budget(decoded.to_pil(), budget.max_bytes))

            states.append(NormalizeState.COMPRESSING)
            budget = budget or CompressionBudget(max_bytes=sys.maxsize)
            compression = self.compressor.compress_with_report(decoded, budget)
            states.append(NormalizeState.DONE)
        except Exception:
            states.append(NormalizeState.FAILED)
            logger.debug("Normalize %s failed; states=%s", describe_source(source), [s.value for s in states])
            raise

        result = NormalizeResult(
            data=compression.data,
            probed_bounds=bounds,
            sample_size=sample_size,
            pixel_format=decoded.pixel_format,
            output_size=decoded.size,
            compression=compression,
            decode_attempts=attempts,
            states=states,
        )
        logger.info(
            "Normalized %s: %dx%d -> %dx%d (sample_size=%d, format=%s) %s %d bytes quality=%s",
            describe_source(source),
            bounds.width,
            bounds.height,
            result.output_size[0],
            result.output_size[1],
            sample_size,
            result.pixel_format.value,
            compression.codec,
            compression.size,
            compression.quality,
        )
        return result


def normalize_image(
    source: ImageSource,
    target_width: int,
    target_height: int,
    budget: Optional[CompressionBudget] = None,
    density_override: Optional[float] = None,
    *,
    codec: str = "jpeg",
    fit: Optional[FitMode] = None,
) -> bytes:
    """Decode `source` toward a target box and encode it within `budget`.

    Returns JPEG bytes (or PNG bytes when ``codec="png"``). When the budget
    cannot be met at the floor quality, the smallest encoding is returned; the
    caller compares its length against the budget if a hard limit matters.
    """

    normalizer = ImageNormalizer(codec=codec)
    return normalizer.normalize(
        source,
        target_width,
        target_height,
        budget,
        density_override,
        fit=fit,
    ).data


__all__ = ["ImageNormalizer", "NormalizeResult", "NormalizeState", "normalize_image"]
