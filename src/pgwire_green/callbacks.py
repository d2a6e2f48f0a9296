"""
Ready-made wait callbacks

wait_select() blocks the calling thread on select(); it is the reference
callback and also what coroutine libraries patch when they monkeypatch the
socket layer.
"""

import select
from typing import Optional

import structlog

from .config import GreenConfig
from .connection import PollState
from .errors import OperationalError

logger = structlog.get_logger()


def wait_select(conn, timeout: Optional[float] = None) -> None:
    """
    Wait callback polling ``conn`` with select() until the operation completes.

    Ctrl-C while waiting sends a cancel request to the server and keeps
    waiting: the query then fails with a cancellation error instead of
    leaving the connection mid-query.
    """
    while True:
        try:
            state = conn.poll()
            if state == PollState.OK:
                break
            elif state == PollState.READ:
                select.select([conn.fileno()], [], [], timeout)
            elif state == PollState.WRITE:
                select.select([], [conn.fileno()], [], timeout)
            else:
                raise OperationalError(f"bad state from poll: {state!r}")
        except KeyboardInterrupt:
            logger.info("Interrupted while waiting, cancelling query",
                        connection_id=conn.connection_id)
            conn.cancel()
            continue


def make_wait_select(config: Optional[GreenConfig] = None):
    """Return a wait_select callback using the configured select() timeout"""
    timeout = (config or GreenConfig()).select_timeout

    def callback(conn):
        return wait_select(conn, timeout)
    callback.__qualname__ = f"wait_select(timeout={timeout})"
    return callback
