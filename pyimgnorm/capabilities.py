"""Process-wide platform capability checks.

Each check runs at most once per process; the answer is memoized and never
reset.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from PIL import Image

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def allocator_hint_supported() -> bool:
    """Whether PIL's native allocator exposes its block-cache controls.

    Some builds (and alternative implementations of `PIL.Image.core`) do not
    expose them; in that case the memory-pressure retry just skips the hint.
    """

    core = getattr(Image, "core", None)
    clear_cache = getattr(core, "clear_cache", None)
    get_blocks_max = getattr(core, "get_blocks_max", None)
    if not callable(clear_cache) or not callable(get_blocks_max):
        logger.debug("PIL allocator hint unavailable on this platform")
        return False
    try:
        get_blocks_max()
    except Exception as exc:  # noqa: BLE001 - capability probe
        logger.debug("PIL allocator hint probe failed: %s", exc)
        return False
    return True


def release_cached_blocks() -> bool:
    """Drop PIL's cached pixel blocks before a low-memory retry.

    Returns True when the hint was applied.
    """

    if not allocator_hint_supported():
        return False
    Image.core.clear_cache()
    logger.debug("Released PIL cached pixel blocks")
    return True


__all__ = ["allocator_hint_supported", "release_cached_blocks"]
