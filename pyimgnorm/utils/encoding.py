"""Transport helpers for encoded image bytes (base64, MIME types)."""

from __future__ import annotations

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Optional, Union

_CODEC_MIME_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
}


def mime_type_for(value: Union[str, Path]) -> Optional[str]:
    """MIME type for a codec name ("jpeg", "png") or a file path/extension."""

    text = str(value).strip().lower()
    if text in _CODEC_MIME_TYPES:
        return _CODEC_MIME_TYPES[text]
    guessed, _encoding = mimetypes.guess_type(text if "." in text else f"file.{text}")
    return guessed


def encode_base64(data: bytes, *, mime_type: Optional[str] = None) -> str:
    """Base64-encode `data`; with `mime_type`, return a ``data:`` URI."""

    encoded = base64.b64encode(bytes(data)).decode("ascii")
    if mime_type:
        return f"data:{mime_type};base64,{encoded}"
    return encoded


def decode_base64(text: str) -> bytes:
    """Decode plain base64 or a ``data:<mime>;base64,`` URI."""

    payload = str(text).strip()
    if payload.startswith("data:"):
        header, sep, payload = payload.partition(",")
        if not sep or not header.endswith(";base64"):
            raise ValueError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


__all__ = ["decode_base64", "encode_base64", "mime_type_for"]
