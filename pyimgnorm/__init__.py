"""pyimgnorm - bounded-memory image normalization.

Decode an image from bytes, a path, a content locator or a bundled resource,
downsampling during decode, and encode it within a byte budget.

Keep top-level imports lightweight: exports are lazy-loaded on demand so
`import pyimgnorm` and `import pyimgnorm.errors` do not pull in PIL/NumPy.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    # Modules
    "config",
    "inputs",
    "utils",
    # Sources
    "BytesSource",
    "FileSource",
    "LocatorSource",
    "ResourceSource",
    "ResourceTable",
    "source_from_candidates",
    # Stages
    "ImageBounds",
    "probe_bounds",
    "compute_sample_size",
    "DecodeConfig",
    "DecodedImage",
    "PixelFormat",
    "decode_source",
    "CompressionBudget",
    "QualityCompressor",
    "LosslessCompressor",
    # Pipeline
    "ImageNormalizer",
    "NormalizeResult",
    "NormalizeState",
    "normalize_image",
    # Errors
    "DecodeError",
    "DecodeErrorKind",
    "EmptySourceError",
    "MemoryExhaustedError",
    "UnreadableSourceError",
    "UnsupportedFormatError",
]


_LAZY_SUBMODULES = {
    "config",
    "inputs",
    "utils",
}

_LAZY_EXPORTS = {
    "BytesSource": ("sources", "BytesSource"),
    "FileSource": ("sources", "FileSource"),
    "LocatorSource": ("sources", "LocatorSource"),
    "ResourceSource": ("sources", "ResourceSource"),
    "ResourceTable": ("sources", "ResourceTable"),
    "source_from_candidates": ("sources", "source_from_candidates"),
    "ImageBounds": ("bounds", "ImageBounds"),
    "probe_bounds": ("bounds", "probe_bounds"),
    "compute_sample_size": ("sampling", "compute_sample_size"),
    "DecodeConfig": ("decoder", "DecodeConfig"),
    "DecodedImage": ("decoder", "DecodedImage"),
    "PixelFormat": ("inputs", "PixelFormat"),
    "decode_source": ("decoder", "decode_source"),
    "CompressionBudget": ("compress", "CompressionBudget"),
    "QualityCompressor": ("compress", "QualityCompressor"),
    "LosslessCompressor": ("compress", "LosslessCompressor"),
    "ImageNormalizer": ("pipeline", "ImageNormalizer"),
    "NormalizeResult": ("pipeline", "NormalizeResult"),
    "NormalizeState": ("pipeline", "NormalizeState"),
    "normalize_image": ("pipeline", "normalize_image"),
    "DecodeError": ("errors", "DecodeError"),
    "DecodeErrorKind": ("errors", "DecodeErrorKind"),
    "EmptySourceError": ("errors", "EmptySourceError"),
    "MemoryExhaustedError": ("errors", "MemoryExhaustedError"),
    "UnreadableSourceError": ("errors", "UnreadableSourceError"),
    "UnsupportedFormatError": ("errors", "UnsupportedFormatError"),
}


def __getattr__(name: str) -> Any:  # pragma: no cover - thin delegation
    if name in _LAZY_SUBMODULES:
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module

    target = _LAZY_EXPORTS.get(name)
    if target is not None:
        module_name, attr = target
        module = import_module(f"{__name__}.{module_name}")
        value = getattr(module, attr)
        globals()[name] = value
        return value

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - tooling convenience
    return sorted(set(globals()) | set(__all__))
