"""
Unit tests for memory pressure notifications.
"""

from unittest.mock import MagicMock

import pytest

from xtreamtv.cache.signals import MemoryPressureSignal


@pytest.mark.unit
class TestMemoryPressureSignal:
    """Tests for MemoryPressureSignal."""

    def test_notifies_subscribers(self):
        signal = MemoryPressureSignal()
        first, second = MagicMock(), MagicMock()
        signal.subscribe(first)
        signal.subscribe(second)

        assert signal.notify() == 2
        first.assert_called_once_with()
        second.assert_called_once_with()

    def test_subscribe_is_idempotent(self):
        signal = MemoryPressureSignal()
        callback = MagicMock()
        signal.subscribe(callback)
        signal.subscribe(callback)

        signal.notify()

        assert callback.call_count == 1

    def test_unsubscribe(self):
        signal = MemoryPressureSignal()
        callback = MagicMock()
        signal.subscribe(callback)
        signal.unsubscribe(callback)
        signal.unsubscribe(callback)

        assert signal.notify() == 0
        callback.assert_not_called()

    def test_failing_subscriber_does_not_stop_others(self):
        signal = MemoryPressureSignal()
        broken = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        signal.subscribe(broken)
        signal.subscribe(healthy)

        signal.notify("background")

        healthy.assert_called_once_with()
