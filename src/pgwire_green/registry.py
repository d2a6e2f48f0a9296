"""
Wait callback registry

Holds at most one wait callback. Executors take a registry explicitly; the
module-level functions operate on the process-wide default registry and are
the compatibility surface for code that expects a single global slot.

No locking: callers serialize registration themselves. A wait already in
progress keeps the callback it started with (see WaitInvoker).
"""

from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger()

WaitCallback = Callable[[Any], Any]


class WaitCallbackRegistry:
    """Single-slot holder for the wait callback"""

    def __init__(self, callback: Optional[WaitCallback] = None):
        self._callback = callback

    def set_callback(self, callback: Optional[WaitCallback]) -> None:
        """Replace the registered callback. None switches back to blocking mode."""
        previous = self._callback
        self._callback = callback
        logger.debug("Wait callback registered" if callback is not None else "Wait callback cleared",
                     callback=getattr(callback, '__qualname__', repr(callback)),
                     replaced=previous is not None)

    def get_callback(self) -> Optional[WaitCallback]:
        return self._callback

    def is_green(self) -> bool:
        """True iff a wait callback is registered (cooperative mode active)"""
        return self._callback is not None


default_registry = WaitCallbackRegistry()


def set_wait_callback(callback: Optional[WaitCallback]) -> None:
    """Register a callback to block waiting for data on every connection"""
    default_registry.set_callback(callback)


def get_wait_callback() -> Optional[WaitCallback]:
    """Return the process-wide wait callback, or None"""
    return default_registry.get_callback()


def is_green() -> bool:
    return default_registry.is_green()
