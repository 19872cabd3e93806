"""
Tests for InFlightRegistry and PendingBatch in wisebatch.registry.
"""

from tests.mocks.transports import CallbackRecorder
from wisebatch.registry import InFlightRegistry, PendingBatch


def test_register_creates_entry_only_once():
    registry = InFlightRegistry()
    recorder = CallbackRecorder()

    assert registry.register(key="y.com", callback=recorder.make("first")) is True
    assert registry.register(key="y.com", callback=recorder.make("second")) is False

    assert "y.com" in registry
    assert len(registry) == 1
    assert registry.waiting_count("y.com") == 2


def test_pop_returns_callbacks_in_registration_order_and_removes_key():
    registry = InFlightRegistry()
    recorder = CallbackRecorder()
    for name in ("a", "b", "c"):
        registry.register(key="k", callback=recorder.make(name))

    callbacks = registry.pop("k")

    assert callbacks is not None
    for callback in callbacks:
        callback(None, None)
    assert recorder.names() == ["a", "b", "c"]
    assert "k" not in registry
    assert registry.pop("k") is None


def test_pending_batch_deduplicates_and_keeps_order():
    batch = PendingBatch()
    for key in ("b", "a", "b", "c"):
        batch.add(key)

    assert len(batch) == 3
    assert "a" in batch
    assert batch.drain() == ["b", "a", "c"]


def test_drain_clears_the_batch():
    batch = PendingBatch()
    batch.add("x")

    batch.drain()

    assert len(batch) == 0
    assert not batch
    assert batch.drain() == []
