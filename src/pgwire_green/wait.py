"""
Single invocation of the wait callback against one connection
"""

import structlog

from .errors import CallbackFailed, NoCallbackRegistered
from .registry import WaitCallbackRegistry

logger = structlog.get_logger()


class WaitInvoker:
    """
    Calls the registered wait callback for a connection.

    The callback is read from the registry once per call and held in a
    local, so replacing it mid-wait does not affect the wait in progress.
    """

    def __init__(self, registry: WaitCallbackRegistry):
        self.registry = registry

    def wait(self, conn) -> None:
        """
        Block (cooperatively) until ``conn`` is ready.

        Raises:
            NoCallbackRegistered: no callback in the registry
            CallbackFailed: the callback raised; its exception is the cause
        """
        callback = self.registry.get_callback()
        if callback is None:
            raise NoCallbackRegistered()

        logger.debug("Calling wait callback",
                     connection_id=conn.connection_id,
                     async_status=conn.async_status.value)
        try:
            callback(conn)
        except Exception as e:
            logger.debug("Error in wait callback",
                         connection_id=conn.connection_id, error=repr(e))
            raise CallbackFailed(e) from e
