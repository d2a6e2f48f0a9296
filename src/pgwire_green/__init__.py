"""
pgwire-green: cooperative query execution for PostgreSQL wire-protocol clients

Lets a driver run queries without blocking its caller's scheduler: the
"wait until the socket is ready" step is delegated to a registered wait
callback, and a failed wait triggers a panic-cancel of the server-side query.
"""

__version__ = "0.1.0"

from .callbacks import make_wait_select, wait_select
from .cancel import CancelToken
from .config import GreenConfig, configure_logging
from .connection import AsyncStatus, GreenConnection, PollState
from .errors import (
    CallbackFailed,
    CancellationIssueFailed,
    ConcurrentAsyncQuery,
    ConnectionClosed,
    DatabaseError,
    DispatchFailed,
    Error,
    GreenWarning,
    InterfaceError,
    NoCallbackRegistered,
    OperationalError,
    ProgrammingError,
    RecoveryWaitFailed,
)
from .executor import AsyncExecutor, execute_green
from .recovery import CancellationRecovery, RecoveryDisposition, RecoveryOutcome, SavedError
from .registry import WaitCallbackRegistry, get_wait_callback, is_green, set_wait_callback
from .wait import WaitInvoker

__all__ = [
    "__version__",
    "AsyncExecutor",
    "AsyncStatus",
    "CallbackFailed",
    "CancelToken",
    "CancellationIssueFailed",
    "CancellationRecovery",
    "ConcurrentAsyncQuery",
    "ConnectionClosed",
    "DatabaseError",
    "DispatchFailed",
    "Error",
    "GreenConfig",
    "GreenConnection",
    "GreenWarning",
    "InterfaceError",
    "NoCallbackRegistered",
    "OperationalError",
    "PollState",
    "ProgrammingError",
    "RecoveryDisposition",
    "RecoveryOutcome",
    "RecoveryWaitFailed",
    "SavedError",
    "WaitCallbackRegistry",
    "WaitInvoker",
    "configure_logging",
    "execute_green",
    "get_wait_callback",
    "is_green",
    "make_wait_select",
    "set_wait_callback",
    "wait_select",
]
