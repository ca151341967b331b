from __future__ import annotations

import pyimgnorm.capabilities as capabilities


def test_allocator_hint_check_is_computed_once() -> None:
    first = capabilities.allocator_hint_supported()
    second = capabilities.allocator_hint_supported()

    assert isinstance(first, bool)
    assert first is second
    assert capabilities.allocator_hint_supported.cache_info().currsize == 1
    assert capabilities.allocator_hint_supported.cache_info().hits >= 1


def test_release_is_skipped_when_unsupported(monkeypatch) -> None:
    monkeypatch.setattr(capabilities, "allocator_hint_supported", lambda: False)
    assert capabilities.release_cached_blocks() is False


def test_release_calls_allocator_when_supported(monkeypatch) -> None:
    calls: list[int] = []

    class _FakeCore:
        def clear_cache(self) -> None:
            calls.append(1)

    monkeypatch.setattr(capabilities, "allocator_hint_supported", lambda: True)
    monkeypatch.setattr(capabilities.Image, "core", _FakeCore())

    assert capabilities.release_cached_blocks() is True
    assert calls == [1]
