"""
Connection interface consumed by green execution

GreenConnection is the seam to the wire-protocol implementation. Subclasses
provide the network side (send, poll, fetch, close); this package only reads
and writes the async bookkeeping fields:

- async_status: WRITE while the query is being flushed, READ while the
  response is pending, DONE when nothing is outstanding. poll() advances it.
- async_busy: set while an async query is outstanding on the connection.
- cancel_token: object whose cancel() asks the server to abort the query.
"""

import threading
import uuid
from enum import Enum
from typing import Any, Optional

from .errors import ConnectionClosed


class AsyncStatus(Enum):
    """Progress of the operation in flight on a connection"""
    WRITE = "write"
    READ = "read"
    DONE = "done"


class PollState(Enum):
    """Value returned by GreenConnection.poll()"""
    OK = 0
    READ = 1
    WRITE = 2


class GreenConnection:
    """
    Base class for connections usable with AsyncExecutor.

    The caller owning a connection holds ``lock`` for the duration of an
    operation; async_status and async_busy are only written under it.
    """

    def __init__(self, cancel_token=None, connection_id: Optional[str] = None):
        self.connection_id = connection_id or uuid.uuid4().hex[:8]
        self.cancel_token = cancel_token
        self.async_status = AsyncStatus.DONE
        self.async_busy = False
        self.closed = False
        self.last_recovery = None
        self.lock = threading.RLock()

    # Network layer, provided by the protocol implementation

    def send_query(self, command: str) -> bool:
        """Start sending ``command`` without blocking. False if it could not start."""
        raise NotImplementedError

    def get_last_result(self) -> Optional[Any]:
        """Return the last result of the completed operation, without blocking"""
        raise NotImplementedError

    def poll(self) -> PollState:
        """Advance the non-blocking exchange and update async_status"""
        raise NotImplementedError

    def fileno(self) -> int:
        raise NotImplementedError

    def execute_blocking(self, command: str) -> Optional[Any]:
        """Run ``command`` synchronously; used when no wait callback is set"""
        raise NotImplementedError

    def _close_transport(self) -> None:
        raise NotImplementedError

    # Lifecycle

    def close_locked(self) -> None:
        """Release the connection; the caller already holds the lock. Idempotent."""
        if self.closed:
            return
        self.closed = True
        self.async_busy = False
        self.async_status = AsyncStatus.DONE
        self._close_transport()

    def close(self) -> None:
        with self.lock:
            self.close_locked()

    def cancel(self) -> None:
        """Ask the server to cancel the query currently running on this connection"""
        if self.closed:
            raise ConnectionClosed()
        self.cancel_token.cancel()
