"""Utility helpers for pyimgnorm."""

from __future__ import annotations

from .encoding import decode_base64, encode_base64, mime_type_for
from .image_ops import Resampling, center_crop, contain_size, fit_image, zoom_to_byte_budget
from .optional_deps import optional_import, require
from .param_check import check_int, check_parameter, check_power_of_two

__all__ = [
    "Resampling",
    "center_crop",
    "check_int",
    "check_parameter",
    "check_power_of_two",
    "contain_size",
    "decode_base64",
    "encode_base64",
    "fit_image",
    "mime_type_for",
    "optional_import",
    "require",
    "zoom_to_byte_budget",
]
