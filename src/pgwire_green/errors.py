"""
Exception and warning types for green (cooperative) query execution.

The hierarchy follows the DB-API 2.0 layout so callers can catch
OperationalError / ProgrammingError the same way they do for the driver.

Recovery outcomes (CancellationIssueFailed, RecoveryWaitFailed) are warning
categories, not exceptions: they never replace the error the caller sees.
"""

from typing import Optional


class Error(Exception):
    """Base class for all pgwire_green errors"""


class InterfaceError(Error):
    """Error related to the connection interface rather than the database"""


class DatabaseError(Error):
    """Error related to the database session"""


class OperationalError(DatabaseError):
    """Error related to the operation of the connection"""


class ProgrammingError(DatabaseError):
    """Error caused by incorrect use of the API"""


class NoCallbackRegistered(OperationalError):
    """Green wait was requested but no wait callback is registered"""

    def __init__(self, message: str = "wait callback not available"):
        super().__init__(message)


class CallbackFailed(OperationalError):
    """
    The registered wait callback raised.

    The callback's exception is kept untouched in ``original`` and chained as
    ``__cause__``. Transport errors, scheduler errors and application errors
    raised inside the callback all end up here.
    """

    def __init__(self, original: BaseException, message: Optional[str] = None):
        self.original = original
        super().__init__(message or f"error in wait callback: {original!r}")


class ConcurrentAsyncQuery(ProgrammingError):
    """A second async query was attempted on a busy connection"""

    def __init__(self, message: str = "a single async query can be executed on the same connection"):
        super().__init__(message)


class DispatchFailed(OperationalError):
    """The query could not be sent to the server"""


class ConnectionClosed(InterfaceError):
    """Operation attempted on a closed connection"""

    def __init__(self, message: str = "connection already closed"):
        super().__init__(message)


class GreenWarning(UserWarning):
    """Base category for warnings emitted during panic-cancel recovery"""


class CancellationIssueFailed(GreenWarning):
    """The cancel request could not be sent; the original error is kept"""


class RecoveryWaitFailed(GreenWarning):
    """Waiting after the cancel request failed; the connection was closed"""
