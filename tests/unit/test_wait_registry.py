"""
Unit Tests for WaitCallbackRegistry, the module-level shims and WaitInvoker
"""

import pytest

from conftest import FakeConnection, ScriptedCallback

import pgwire_green
from pgwire_green.errors import CallbackFailed, NoCallbackRegistered, OperationalError
from pgwire_green.registry import WaitCallbackRegistry
from pgwire_green.wait import WaitInvoker

pytestmark = pytest.mark.unit


class TestWaitCallbackRegistry:
    """Single-slot registry behaviour"""

    def test_empty_by_default(self):
        registry = WaitCallbackRegistry()
        assert registry.get_callback() is None
        assert registry.is_green() is False

    def test_set_then_get_returns_same_callback(self):
        registry = WaitCallbackRegistry()
        callback = ScriptedCallback()
        registry.set_callback(callback)
        assert registry.get_callback() is callback
        assert registry.is_green() is True

    def test_get_does_not_consume(self):
        registry = WaitCallbackRegistry()
        callback = ScriptedCallback()
        registry.set_callback(callback)
        registry.get_callback()
        assert registry.get_callback() is callback

    def test_clear_with_none(self):
        registry = WaitCallbackRegistry(ScriptedCallback())
        registry.set_callback(None)
        assert registry.get_callback() is None
        assert registry.is_green() is False

    def test_replace(self):
        first, second = ScriptedCallback(), ScriptedCallback()
        registry = WaitCallbackRegistry(first)
        registry.set_callback(second)
        assert registry.get_callback() is second

    def test_registries_are_independent(self):
        a, b = WaitCallbackRegistry(), WaitCallbackRegistry()
        a.set_callback(ScriptedCallback())
        assert b.is_green() is False


class TestModuleShims:
    """Process-wide set_wait_callback / get_wait_callback / is_green"""

    def test_round_trip(self):
        callback = ScriptedCallback()
        pgwire_green.set_wait_callback(callback)
        assert pgwire_green.get_wait_callback() is callback
        assert pgwire_green.is_green() is True

    def test_clear(self):
        pgwire_green.set_wait_callback(ScriptedCallback())
        pgwire_green.set_wait_callback(None)
        assert pgwire_green.get_wait_callback() is None
        assert pgwire_green.is_green() is False

    def test_shim_does_not_affect_private_registry(self, registry):
        pgwire_green.set_wait_callback(ScriptedCallback())
        assert registry.is_green() is False


class TestWaitInvoker:
    """Invocation of the callback and failure translation"""

    def test_no_callback(self, registry):
        invoker = WaitInvoker(registry)
        with pytest.raises(NoCallbackRegistered) as exc_info:
            invoker.wait(FakeConnection())
        assert "wait callback not available" in str(exc_info.value)
        assert isinstance(exc_info.value, OperationalError)

    def test_callback_receives_connection(self, registry):
        seen = []
        registry.set_callback(seen.append)
        conn = FakeConnection()
        WaitInvoker(registry).wait(conn)
        assert seen == [conn]

    def test_return_value_ignored(self, registry):
        registry.set_callback(lambda conn: "anything")
        assert WaitInvoker(registry).wait(FakeConnection()) is None

    def test_callback_error_wrapped_untouched(self, registry):
        error = ValueError("scheduler exploded")
        registry.set_callback(ScriptedCallback(error))
        with pytest.raises(CallbackFailed) as exc_info:
            WaitInvoker(registry).wait(FakeConnection())
        assert exc_info.value.original is error
        assert exc_info.value.__cause__ is error

    def test_keyboard_interrupt_not_wrapped(self, registry):
        registry.set_callback(ScriptedCallback(KeyboardInterrupt()))
        with pytest.raises(KeyboardInterrupt):
            WaitInvoker(registry).wait(FakeConnection())

    def test_replacing_callback_mid_wait_keeps_pinned_callback(self, registry):
        """A callback re-registering another one still completes its own wait"""
        replacement = ScriptedCallback()
        calls = []

        def first(conn):
            registry.set_callback(replacement)
            calls.append("first")

        registry.set_callback(first)
        invoker = WaitInvoker(registry)
        invoker.wait(FakeConnection())

        assert calls == ["first"]
        assert replacement.calls == []
        assert registry.get_callback() is replacement

        invoker.wait(FakeConnection())
        assert len(replacement.calls) == 1
