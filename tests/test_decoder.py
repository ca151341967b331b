from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

import pyimgnorm.decoder as decoder_mod
from pyimgnorm.decoder import DecodeConfig, DecodedImage, decode_source
from pyimgnorm.errors import (
    EmptySourceError,
    MemoryExhaustedError,
    UnreadableSourceError,
    UnsupportedFormatError,
)
from pyimgnorm.inputs import PixelFormat
from pyimgnorm.sources import BytesSource, FileSource, LocatorSource, ResourceTable


def _gradient(width: int, height: int) -> np.ndarray:
    xs = np.linspace(0, 255, width, dtype=np.float32)[None, :]
    ys = np.linspace(0, 255, height, dtype=np.float32)[:, None]
    r = np.broadcast_to(xs, (height, width))
    g = np.broadcast_to(ys, (height, width))
    b = (r + g) / 2.0
    return np.stack([r, g, b], axis=-1).astype(np.uint8)


def _encode(arr: np.ndarray, fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(arr).save(buffer, format=fmt)
    return buffer.getvalue()


class _TrackingStream(io.BytesIO):
    closed_count = 0

    def close(self) -> None:
        type(self).closed_count += 1
        super().close()


def test_decode_full_size_high_fidelity() -> None:
    decoded = decode_source(BytesSource(_encode(_gradient(64, 48), "PNG")))

    assert decoded.pixel_format is PixelFormat.HIGH_FIDELITY
    assert decoded.size == (64, 48)
    assert decoded.pixels.shape == (48, 64, 4)
    assert decoded.pixels.dtype == np.uint8
    assert decoded.sample_size == 1
    assert decoded.source_bounds.width == 64


@pytest.mark.parametrize("fmt", ["JPEG", "PNG"])
def test_decode_applies_sample_size(fmt: str) -> None:
    data = _encode(_gradient(640, 480), fmt)

    decoded = decode_source(BytesSource(data), DecodeConfig(sample_size=4))

    assert decoded.size == (160, 120)
    assert decoded.sample_size == 4
    assert (decoded.source_bounds.width, decoded.source_bounds.height) == (640, 480)


def test_decode_low_memory_halves_buffer() -> None:
    data = _encode(_gradient(32, 16), "PNG")

    high = decode_source(BytesSource(data), DecodeConfig())
    low = decode_source(BytesSource(data), DecodeConfig(pixel_format=PixelFormat.LOW_MEMORY))

    assert low.pixels.dtype == np.uint16
    assert low.pixels.shape == (16, 32)
    assert low.nbytes * 2 == high.nbytes
    assert low.to_pil().mode == "RGB"
    assert high.to_pil().mode == "RGBA"


def test_decode_density_override_scales_output() -> None:
    data = _encode(_gradient(200, 100), "PNG")
    decoded = decode_source(BytesSource(data), DecodeConfig(density_override=2.0))
    assert decoded.size == (100, 50)


def test_decode_every_source_variant(tmp_path: Path) -> None:
    data = _encode(_gradient(24, 12), "PNG")
    path = tmp_path / "img.png"
    path.write_bytes(data)
    table = ResourceTable({5: data})

    sources = [
        BytesSource(data),
        FileSource(path),
        LocatorSource(path.as_uri(), lambda loc: open(str(path), "rb")),
        table.source(5),
    ]
    for source in sources:
        assert decode_source(source).size == (24, 12)


def test_decode_errors(tmp_path: Path) -> None:
    with pytest.raises(EmptySourceError):
        decode_source(BytesSource(b""))
    with pytest.raises(UnsupportedFormatError):
        decode_source(BytesSource(b"\x00\x01\x02garbage"))
    with pytest.raises(UnreadableSourceError):
        decode_source(FileSource(tmp_path / "nope.png"))


def test_decode_maps_memory_error_and_closes_stream(monkeypatch) -> None:
    data = _encode(_gradient(16, 16), "PNG")

    def exhausted(image, pixel_format):  # noqa: ANN001
        raise MemoryError("simulated")

    monkeypatch.setattr(decoder_mod, "pixels_from_pil", exhausted)
    _TrackingStream.closed_count = 0

    with pytest.raises(MemoryExhaustedError) as exc:
        decode_source(LocatorSource("content://x", lambda _loc: _TrackingStream(data)))

    assert isinstance(exc.value.__cause__, MemoryError)
    assert _TrackingStream.closed_count == 1


def test_decode_pixel_limit_is_unsupported_format(monkeypatch) -> None:
    data = _encode(_gradient(100, 100), "PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(UnsupportedFormatError) as exc:
        decode_source(BytesSource(data), DecodeConfig(pixel_format=PixelFormat.LOW_MEMORY))

    assert isinstance(exc.value.__cause__, Image.DecompressionBombError)


def test_decode_closes_locator_stream_on_unsupported_format() -> None:
    _TrackingStream.closed_count = 0
    with pytest.raises(UnsupportedFormatError):
        decode_source(LocatorSource("content://bad", lambda _loc: _TrackingStream(b"not an image")))
    assert _TrackingStream.closed_count == 1


def test_decode_config_validation_and_degrade() -> None:
    with pytest.raises(ValueError):
        DecodeConfig(sample_size=3)
    with pytest.raises(ValueError):
        DecodeConfig(sample_size=0)
    with pytest.raises(ValueError):
        DecodeConfig(density_override=0.0)

    config = DecodeConfig(sample_size=8, pixel_format="high_fidelity", density_override=1.5)
    assert config.pixel_format is PixelFormat.HIGH_FIDELITY

    degraded = config.degraded()
    assert degraded.pixel_format is PixelFormat.LOW_MEMORY
    assert degraded.sample_size == 8
    assert degraded.density_override == 1.5
    assert degraded.degraded() == degraded


def test_decoded_image_from_pil_round_trip() -> None:
    img = Image.fromarray(_gradient(10, 6))
    decoded = DecodedImage.from_pil(img, PixelFormat.HIGH_FIDELITY)
    assert decoded.to_pil().size == (10, 6)
    assert np.array_equal(np.asarray(decoded.to_pil().convert("RGB")), np.asarray(img))
