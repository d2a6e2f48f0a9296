"""
Pytest configuration for pgwire-green tests

Provides an in-memory connection whose network side is scripted, so the
executor and recovery paths can be driven without a server:

- FakeConnection: records sends, fetches and closes; poll() follows a script
- FakeCancelToken: counts cancel requests, optionally failing
- ScriptedCallback: wait callback that succeeds or raises per invocation
"""

from typing import Any, List, Optional

import pytest
import structlog

from pgwire_green import registry as registry_module
from pgwire_green.connection import AsyncStatus, GreenConnection, PollState
from pgwire_green.errors import ConnectionClosed, OperationalError
from pgwire_green.executor import AsyncExecutor
from pgwire_green.registry import WaitCallbackRegistry

logger = structlog.get_logger()

_STATUS_AFTER_POLL = {
    PollState.OK: AsyncStatus.DONE,
    PollState.READ: AsyncStatus.READ,
    PollState.WRITE: AsyncStatus.WRITE,
}


class FakeCancelToken:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = 0

    def cancel(self):
        self.calls += 1
        if self.error is not None:
            raise self.error


class FakeConnection(GreenConnection):
    """Connection double with a scripted network side"""

    def __init__(self, results: Optional[List[Any]] = None, send_ok: bool = True,
                 cancel_error: Optional[Exception] = None,
                 poll_script: Optional[List[Any]] = None, fd: int = -1):
        super().__init__(cancel_token=FakeCancelToken(cancel_error))
        self.results = list(results or [])
        self.send_ok = send_ok
        self.poll_script = list(poll_script or [])
        self.fd = fd
        self.sent: List[str] = []
        self.blocking: List[str] = []
        self.fetches = 0
        self.transport_closed = 0

    def send_query(self, command):
        if self.closed:
            raise ConnectionClosed()
        self.sent.append(command)
        return self.send_ok

    def get_last_result(self):
        if self.closed:
            raise ConnectionClosed()
        self.fetches += 1
        return self.results.pop(0) if self.results else None

    def poll(self):
        state = self.poll_script.pop(0) if self.poll_script else PollState.OK
        if isinstance(state, BaseException):
            raise state
        if state in _STATUS_AFTER_POLL:
            self.async_status = _STATUS_AFTER_POLL[state]
        return state

    def fileno(self):
        return self.fd

    def execute_blocking(self, command):
        if self.closed:
            raise ConnectionClosed()
        self.blocking.append(command)
        return self.results.pop(0) if self.results else None

    def _close_transport(self):
        self.transport_closed += 1


class ScriptedCallback:
    """
    Wait callback following a script: None succeeds, an exception is raised.

    Once the script runs out every call succeeds. Each call records the
    connection's async_status and marks the operation as complete, the way
    a callback driving poll() to OK would.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []

    def __call__(self, conn):
        self.calls.append(conn.async_status)
        step = self.script.pop(0) if self.script else None
        if step is not None:
            raise step
        conn.async_status = AsyncStatus.DONE


@pytest.fixture(autouse=True)
def reset_default_registry():
    """Keep the process-wide wait callback from leaking between tests"""
    registry_module.default_registry.set_callback(None)
    yield
    registry_module.default_registry.set_callback(None)


@pytest.fixture
def registry():
    return WaitCallbackRegistry()


@pytest.fixture
def executor(registry):
    return AsyncExecutor(registry)


@pytest.fixture
def conn():
    return FakeConnection(results=["result-1", "result-2", "result-3"])


@pytest.fixture
def network_error():
    return OperationalError("server closed the connection unexpectedly")
