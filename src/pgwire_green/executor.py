"""
Green Query Executor

Replacement for a blocking exec that hands the "wait until the socket is
ready" step to the registered wait callback. The connection lock must be
held by the caller of execute_async(); execute() takes it itself.
"""

from typing import Any, Optional

import structlog

from .config import GreenConfig
from .connection import AsyncStatus, GreenConnection
from .errors import CallbackFailed, ConcurrentAsyncQuery, ConnectionClosed, DispatchFailed
from .recovery import CancellationRecovery, RecoveryOutcome
from .registry import WaitCallbackRegistry, default_registry
from .wait import WaitInvoker

logger = structlog.get_logger()


class AsyncExecutor:
    """
    Send-then-wait driver for one command at a time per connection.

    Each executor reads its wait callback from ``registry``. An executor
    built without one gets a fresh, empty registry and runs every query in
    blocking mode through execute().

    ``last_recovery`` is the most recent panic-cancel outcome across every
    connection this executor served; the per-connection outcome is kept in
    ``conn.last_recovery``.
    """

    def __init__(self, registry: Optional[WaitCallbackRegistry] = None,
                 config: Optional[GreenConfig] = None):
        self.registry = registry if registry is not None else WaitCallbackRegistry()
        self.config = config or GreenConfig()
        self.invoker = WaitInvoker(self.registry)
        self.recovery = CancellationRecovery(self.invoker, self.config)
        self.last_recovery: Optional[RecoveryOutcome] = None

    def execute(self, conn: GreenConnection, command: str) -> Optional[Any]:
        """Run ``command``, through the wait callback if one is registered"""
        if conn.closed:
            raise ConnectionClosed()
        with conn.lock:
            if self.registry.is_green():
                return self.execute_async(conn, command)
            logger.debug("No wait callback, executing blocking",
                         connection_id=conn.connection_id)
            return conn.execute_blocking(command)

    def execute_async(self, conn: GreenConnection, command: str) -> Optional[Any]:
        """
        Send ``command`` and wait for its result through the wait callback.

        Returns:
            The last result of the command

        Raises:
            ConcurrentAsyncQuery: an async query is already outstanding on conn
            DispatchFailed: the query could not be sent
            NoCallbackRegistered: no wait callback is registered
            CallbackFailed: the wait callback raised; panic-cancel has run
        """
        if conn.async_busy:
            raise ConcurrentAsyncQuery()
        if conn.closed:
            raise ConnectionClosed()

        conn.async_busy = True
        try:
            logger.debug("Sending async query",
                         connection_id=conn.connection_id,
                         command_length=len(command))
            try:
                sent = conn.send_query(command)
            except Exception as e:
                raise DispatchFailed(f"could not send query: {e}") from e
            if not sent:
                raise DispatchFailed("could not send query")

            # poll() moves WRITE -> READ -> DONE from inside the callback
            conn.async_status = AsyncStatus.WRITE

            try:
                self.invoker.wait(conn)
            except (CallbackFailed, KeyboardInterrupt) as e:
                outcome = self.recovery.attempt(conn, e)
                conn.last_recovery = outcome
                self.last_recovery = outcome
                raise

            # The response is buffered: this does not block
            result = conn.get_last_result()
            logger.debug("Async query complete", connection_id=conn.connection_id)
            return result
        finally:
            conn.async_status = AsyncStatus.DONE
            conn.async_busy = False


_default_executor = AsyncExecutor(default_registry)


def execute_green(conn: GreenConnection, command: str) -> Optional[Any]:
    """Run ``command`` on ``conn`` using the process-wide wait callback"""
    with conn.lock:
        return _default_executor.execute_async(conn, command)
