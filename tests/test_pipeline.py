from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

import pyimgnorm.pipeline as pipeline_mod
from pyimgnorm.compress import CompressionBudget
from pyimgnorm.decoder import DecodeConfig, decode_source
from pyimgnorm.errors import (
    EmptySourceError,
    MemoryExhaustedError,
    UnreadableSourceError,
    UnsupportedFormatError,
)
from pyimgnorm.inputs import PixelFormat
from pyimgnorm.pipeline import ImageNormalizer, NormalizeState, normalize_image
from pyimgnorm.sources import BytesSource, LocatorSource, source_from_candidates


def _photo_like(width: int, height: int, fmt: str = "JPEG") -> bytes:
    xs = np.linspace(0, 255, width, dtype=np.float32)[None, :]
    ys = np.linspace(0, 255, height, dtype=np.float32)[:, None]
    r = np.broadcast_to(xs, (height, width))
    g = np.broadcast_to(ys, (height, width))
    b = (np.sin(xs / 9.0) * np.cos(ys / 7.0) + 1.0) * 127.0
    rgb = np.stack([r, g, np.broadcast_to(b, (height, width))], axis=-1).astype(np.uint8)
    buffer = io.BytesIO()
    if fmt == "JPEG":
        Image.fromarray(rgb).save(buffer, format=fmt, quality=95)
    else:
        Image.fromarray(rgb).save(buffer, format=fmt)
    return buffer.getvalue()


def test_large_photo_is_downsampled_and_budgeted() -> None:
    source = BytesSource(_photo_like(4000, 3000))
    budget = CompressionBudget(max_bytes=100_000)

    result = ImageNormalizer().normalize(source, 800, 600, budget)

    assert result.sample_size == 4
    assert result.output_size == (1000, 750)
    assert result.decode_attempts == 1
    assert result.pixel_format is PixelFormat.HIGH_FIDELITY
    assert len(result.data) <= budget.max_bytes or result.compression.quality == budget.floor_quality
    assert result.states == [
        NormalizeState.PROBING,
        NormalizeState.SIZING_DECIDED,
        NormalizeState.DECODING,
        NormalizeState.DECODED,
        NormalizeState.COMPRESSING,
        NormalizeState.DONE,
    ]

    with Image.open(io.BytesIO(result.data)) as img:
        assert img.format == "JPEG"
        assert img.size == result.output_size


def test_round_trip_dimensions_respect_sample_size() -> None:
    data = _photo_like(640, 480, "PNG")
    out = normalize_image(BytesSource(data), 100, 100, CompressionBudget(max_bytes=50_000))

    with Image.open(io.BytesIO(out)) as img:
        width, height = img.size
    # sample_size == 4 for 640x480 -> 100x100
    assert (width, height) == (160, 120)
    assert width <= -(-640 // 4) and height <= -(-480 // 4)


def test_empty_buffer_raises_empty_source() -> None:
    with pytest.raises(EmptySourceError):
        normalize_image(BytesSource(b""), 800, 600, CompressionBudget(max_bytes=1000))


def test_all_empty_candidates_fail_before_any_decode(monkeypatch) -> None:
    def unexpected(*args, **kwargs):
        raise AssertionError("no decode should be attempted")

    monkeypatch.setattr(pipeline_mod, "decode_source", unexpected)
    monkeypatch.setattr(pipeline_mod, "probe_bounds", unexpected)

    with pytest.raises(EmptySourceError):
        source = source_from_candidates(data=b"", path="", locator=None, resource_id=0)
        normalize_image(source, 800, 600)


def test_memory_exhaustion_retries_once_with_low_memory_format() -> None:
    calls: list[DecodeConfig] = []

    def flaky_decoder(source, config):
        calls.append(config)
        if config.pixel_format is PixelFormat.HIGH_FIDELITY:
            raise MemoryExhaustedError("simulated allocation failure")
        return decode_source(source, config)

    normalizer = ImageNormalizer(decoder=flaky_decoder)
    result = normalizer.normalize(BytesSource(_photo_like(640, 480)), 100, 100, CompressionBudget(max_bytes=20_000))

    assert [c.pixel_format for c in calls] == [PixelFormat.HIGH_FIDELITY, PixelFormat.LOW_MEMORY]
    assert calls[0].sample_size == calls[1].sample_size == 4
    assert result.decode_attempts == 2
    assert result.pixel_format is PixelFormat.LOW_MEMORY
    assert result.states.count(NormalizeState.DECODE_FAILED) == 1
    assert result.states[-1] is NormalizeState.DONE


def test_persistent_memory_exhaustion_is_not_retried_twice() -> None:
    calls: list[DecodeConfig] = []

    def exhausted_decoder(source, config):
        calls.append(config)
        raise MemoryExhaustedError("still out of memory")

    normalizer = ImageNormalizer(decoder=exhausted_decoder)
    with pytest.raises(MemoryExhaustedError):
        normalizer.normalize(BytesSource(_photo_like(64, 64)), 32, 32)

    assert len(calls) == 2


def test_other_decode_errors_propagate_without_retry() -> None:
    calls: list[DecodeConfig] = []

    def broken_decoder(source, config):
        calls.append(config)
        raise UnsupportedFormatError("corrupt")

    normalizer = ImageNormalizer(decoder=broken_decoder)
    with pytest.raises(UnsupportedFormatError):
        normalizer.normalize(BytesSource(_photo_like(64, 64)), 32, 32)

    assert len(calls) == 1


def test_retry_applies_allocator_hint(monkeypatch) -> None:
    released: list[bool] = []
    monkeypatch.setattr(pipeline_mod, "release_cached_blocks", lambda: released.append(True) or True)

    def flaky_decoder(source, config):
        if config.pixel_format is PixelFormat.HIGH_FIDELITY:
            raise MemoryExhaustedError("simulated")
        return decode_source(source, config)

    ImageNormalizer(decoder=flaky_decoder).normalize(BytesSource(_photo_like(32, 32)), 32, 32)
    assert released == [True]


def test_probe_failure_is_terminal() -> None:
    with pytest.raises(UnsupportedFormatError):
        normalize_image(BytesSource(b"garbage bytes"), 10, 10)


def test_png_codec_is_single_pass() -> None:
    result = ImageNormalizer(codec="png").normalize(
        BytesSource(_photo_like(64, 48, "PNG")),
        64,
        48,
        CompressionBudget(max_bytes=1_000_000),
    )

    assert result.data[:8] == b"\x89PNG\r\n\x1a\n"
    assert result.compression.quality is None
    assert len(result.compression.attempts) == 1


@pytest.mark.parametrize("fit,expected", [("contain", (100, 75)), ("cover", (100, 100))])
def test_fit_modes(fit: str, expected: tuple) -> None:
    out = normalize_image(BytesSource(_photo_like(640, 480, "PNG")), 100, 100, fit=fit)

    with Image.open(io.BytesIO(out)) as img:
        assert img.size == expected


def test_zoom_to_budget_shrinks_before_quality_loop() -> None:
    source = BytesSource(_photo_like(320, 240, "PNG"))
    budget = CompressionBudget(max_bytes=1_000)

    plain = ImageNormalizer().normalize(source, 320, 240, budget)
    zoomed = ImageNormalizer().normalize(source, 320, 240, budget, zoom_to_budget=True)

    assert plain.output_size == (320, 240)
    assert zoomed.output_size[0] < 320 and zoomed.output_size[1] < 240


def test_density_override_flows_through() -> None:
    result = ImageNormalizer().normalize(BytesSource(_photo_like(200, 100, "PNG")), 500, 500, density_override=2.0)
    assert result.probed_bounds.width == 100
    assert result.output_size == (100, 50)


def test_result_to_dict_is_json_friendly() -> None:
    result = ImageNormalizer().normalize(BytesSource(_photo_like(64, 64, "PNG")), 32, 32)
    payload = result.to_dict()

    assert payload["probed_bounds"] == {"width": 64, "height": 64}
    assert "source_bounds" not in payload
    assert payload["sample_size"] == 1
    assert payload["codec"] == "jpeg"
    assert payload["states"][-1] == "done"
    assert payload["bytes"] == len(result.data)


def test_locator_read_failure_surfaces_as_decode_error() -> None:
    class _ResetStream(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def readinto(self, buffer) -> int:
            raise OSError("connection reset")

    with pytest.raises(UnreadableSourceError):
        normalize_image(LocatorSource("content://x", lambda _loc: _ResetStream()), 10, 10)


def test_pixel_limit_is_unsupported_and_never_decoded(monkeypatch) -> None:
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    calls: list[DecodeConfig] = []

    def tracking_decoder(source, config):
        calls.append(config)
        return decode_source(source, config)

    with pytest.raises(UnsupportedFormatError):
        ImageNormalizer(decoder=tracking_decoder).normalize(BytesSource(_photo_like(100, 100, "PNG")), 10, 10)
    assert calls == []
