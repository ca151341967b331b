"""Downsample factor selection."""

from __future__ import annotations

from pyimgnorm.bounds import ImageBounds
from pyimgnorm.utils.param_check import check_parameter


def compute_sample_size(bounds: ImageBounds, target_width: int, target_height: int) -> int:
    """Return the power-of-two downsample factor for decoding `bounds` toward a target box.

    The factor is the largest power of two that keeps both half-dimensions
    strictly above the target after division. Images already inside the
    target box are decoded at full size (factor 1).
    """

    check_parameter(target_width, low=1, param_name="target_width")
    check_parameter(target_height, low=1, param_name="target_height")

    height, width = int(bounds.height), int(bounds.width)
    sample_size = 1
    if height <= target_height and width <= target_width:
        return sample_size

    half_height = height // 2
    half_width = width // 2
    while (half_height // sample_size) > target_height and (half_width // sample_size) > target_width:
        sample_size *= 2
    return sample_size


def is_power_of_two(value: int) -> bool:
    return value >= 1 and (value & (value - 1)) == 0


__all__ = ["compute_sample_size", "is_power_of_two"]
