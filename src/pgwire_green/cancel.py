"""
PostgreSQL CancelRequest client

Cancellation goes over a separate connection to the server:

- Length: 16 bytes total
- Code: CANCEL_REQUEST_CODE (80877102)
- PID: 4 bytes (backend_pid from BackendKeyData)
- Secret: 4 bytes (backend_secret from BackendKeyData)

The server sends no response; it closes the socket once the request is
processed.
"""

import socket
import struct
from typing import Optional

import structlog

from .config import GreenConfig
from .errors import OperationalError

logger = structlog.get_logger()

CANCEL_REQUEST_CODE = 80877102
CANCEL_REQUEST_LENGTH = 16


def build_cancel_request(backend_pid: int, backend_secret: int) -> bytes:
    """Encode a CancelRequest packet"""
    return struct.pack('!IIII', CANCEL_REQUEST_LENGTH, CANCEL_REQUEST_CODE,
                       backend_pid, backend_secret)


class CancelToken:
    """
    Handle used to cancel the query running on one backend.

    Built from the BackendKeyData received at startup. cancel() may be
    called once per outstanding query; the token itself stays valid for
    the lifetime of the connection.
    """

    def __init__(self, host: str, port: int, backend_pid: int, backend_secret: int,
                 timeout: Optional[float] = 5.0):
        self.host = host
        self.port = port
        self.backend_pid = backend_pid
        self.backend_secret = backend_secret
        self.timeout = timeout

    @classmethod
    def from_backend_key_data(cls, host: str, port: int, body: bytes,
                              config: Optional[GreenConfig] = None) -> "CancelToken":
        """Build a token from the body of a BackendKeyData ('K') message"""
        if len(body) != 8:
            raise ValueError(f"Invalid BackendKeyData length: {len(body)}")
        config = config or GreenConfig()
        backend_pid, backend_secret = struct.unpack('!II', body)
        return cls(host, port, backend_pid, backend_secret, timeout=config.cancel_timeout)

    def cancel(self) -> None:
        """
        Send the cancel request and wait for the server to close the socket.

        Once the request is written the cancel counts as sent: a server that
        keeps the socket open past ``timeout`` is logged, not raised.

        Raises:
            OperationalError: the request could not be delivered
        """
        logger.debug("Sending cancel request",
                     host=self.host, port=self.port,
                     backend_pid=self.backend_pid, backend_secret="***")
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            self._log_failure(e)
            raise OperationalError(f"could not send cancel request: {e}") from e

        with sock:
            try:
                sock.sendall(build_cancel_request(self.backend_pid, self.backend_secret))
            except OSError as e:
                self._log_failure(e)
                raise OperationalError(f"could not send cancel request: {e}") from e

            try:
                # EOF means the server has processed the request
                while sock.recv(256):
                    pass
            except OSError as e:
                logger.warning("Cancel request sent, server did not close the connection",
                               host=self.host, port=self.port,
                               backend_pid=self.backend_pid, error=str(e))
                return

        logger.info("Cancel request sent", backend_pid=self.backend_pid)

    def _log_failure(self, error: OSError) -> None:
        logger.warning("Cancel request failed",
                       host=self.host, port=self.port,
                       backend_pid=self.backend_pid, error=str(error))

    def __repr__(self):
        return f"<CancelToken {self.host}:{self.port} pid={self.backend_pid}>"
