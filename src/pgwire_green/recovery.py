"""
Panic-cancel recovery

Runs when the wait callback fails while a query is outstanding. A failure
there may be a network error or an error raised by the callback and the two
cannot be told apart, so the query may still be running on the server. The
procedure:

1. Save the pending error.
2. Send a cancel request. If that fails, warn and leave the connection as is.
3. Wait once more for the cancellation to be acknowledged. If that wait
   fails too, warn and close the connection.
4. Otherwise discard the result of the cancelled query, or the next query
   fails with "another command is already in progress".

The saved error is always the one reported back to the caller.
"""

import sys
import warnings
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import List, Optional, Type

import structlog

from .config import GreenConfig
from .errors import CancellationIssueFailed, GreenWarning, RecoveryWaitFailed
from .wait import WaitInvoker

logger = structlog.get_logger()


@dataclass
class SavedError:
    """An error suspended while recovery runs"""
    exc_type: Optional[Type[BaseException]] = None
    exc_value: Optional[BaseException] = None
    exc_traceback: Optional[TracebackType] = None

    @classmethod
    def capture(cls, error: Optional[BaseException] = None) -> "SavedError":
        """Capture ``error``, or the exception currently being handled if None"""
        if error is None:
            exc_type, exc_value, exc_traceback = sys.exc_info()
            return cls(exc_type, exc_value, exc_traceback)
        return cls(type(error), error, error.__traceback__)

    def __bool__(self):
        return self.exc_value is not None

    def restore(self) -> Optional[BaseException]:
        """Return the saved exception with its original traceback attached"""
        if self.exc_value is None:
            return None
        return self.exc_value.with_traceback(self.exc_traceback)


class RecoveryDisposition(Enum):
    """What recovery left the connection in"""
    DRAINED = "drained"                  # cancelled and drained, still usable
    CANCEL_NOT_SENT = "cancel_not_sent"  # cancel could not be sent, left as is
    CLOSED = "closed"                    # forcibly closed


@dataclass
class RecoveryOutcome:
    disposition: RecoveryDisposition
    error: Optional[BaseException] = None
    secondary_errors: List[BaseException] = field(default_factory=list)


class CancellationRecovery:
    """Cancels the server-side query after a failed wait and decides the connection's fate"""

    def __init__(self, invoker: WaitInvoker, config: Optional[GreenConfig] = None):
        self.invoker = invoker
        self.config = config or GreenConfig()

    def attempt(self, conn, error: Optional[BaseException] = None) -> RecoveryOutcome:
        """
        Run panic-cancel on ``conn``.

        Args:
            conn: connection whose wait failed
            error: the error that triggered recovery; defaults to the exception
                being handled

        Returns:
            RecoveryOutcome whose ``error`` is the one to report to the caller
        """
        saved = SavedError.capture(error)
        if not saved:
            logger.debug("Panic cancel called without an error set",
                         connection_id=conn.connection_id)

        secondary: List[BaseException] = []

        logger.debug("Panic cancel: sending cancel request",
                     connection_id=conn.connection_id,
                     async_status=conn.async_status.value)
        try:
            if conn.cancel_token is None:
                raise RuntimeError("connection has no cancel token")
            conn.cancel_token.cancel()
        except Exception as e:
            logger.warning("Panic cancel: canceling failed",
                           connection_id=conn.connection_id, error=str(e))
            secondary.append(e)
            self._warn(str(e), CancellationIssueFailed, secondary)
            return self._finish(conn, saved, RecoveryDisposition.CANCEL_NOT_SENT, secondary)

        # TODO: restart from AsyncStatus.WRITE if drivers need to flush after a cancel
        try:
            self.invoker.wait(conn)
        except (Exception, KeyboardInterrupt) as e:
            # an interrupt here leaves the socket mid-exchange as much as an error does
            logger.warning("Panic cancel: error after cancel, closing the connection",
                           connection_id=conn.connection_id, error=str(e))
            secondary.append(e)
            self._warn("async cancel failed: closing the connection", RecoveryWaitFailed, secondary)
            close_error = None
            try:
                conn.close_locked()
            except Exception as ce:
                logger.error("Panic cancel: closing the connection failed",
                             connection_id=conn.connection_id, error=str(ce))
                secondary.append(ce)
                close_error = ce
            return self._finish(conn, saved, RecoveryDisposition.CLOSED, secondary, close_error)

        try:
            discarded = conn.get_last_result()
        except Exception as e:
            logger.warning("Panic cancel: could not drain cancelled result",
                           connection_id=conn.connection_id, error=str(e))
            secondary.append(e)
        else:
            logger.debug("Panic cancel: discarded result of cancelled query",
                         connection_id=conn.connection_id,
                         had_result=discarded is not None)

        return self._finish(conn, saved, RecoveryDisposition.DRAINED, secondary)

    def _warn(self, message: str, category, secondary: List[BaseException]) -> None:
        if not self.config.warn_on_recovery:
            return
        try:
            warnings.warn(message, category, stacklevel=3)
        except GreenWarning as w:
            # warnings filter set to "error"
            secondary.append(w)

    def _finish(self, conn, saved: SavedError, disposition: RecoveryDisposition,
                secondary: List[BaseException],
                recovery_error: Optional[BaseException] = None) -> RecoveryOutcome:
        error = saved.restore() if saved else recovery_error
        logger.info("Panic cancel finished",
                    connection_id=conn.connection_id,
                    disposition=disposition.value,
                    error=repr(error) if error is not None else None)
        return RecoveryOutcome(disposition, error, secondary)
