"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: buffered file objects for reading the
request and writing the response, a per-socket timeout, and a careful close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A request sent as

    GET /docs/ HTTP/1.1\\r\\n
    Host: localhost\\r\\n
    \\r\\n

may arrive as one recv() or as five. Rather than stitching chunks together
by hand, the connection exposes the socket as buffered binary files:

    rfile = sock.makefile("rb")     rfile.readline() returns ONE full line,
                                    however the bytes were split
    wfile = sock.makefile("wb")     wfile.write() buffers; flush() sends

The request parser only ever calls rfile.readline(limit), so "find the line
boundary" is the buffered reader's job.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

Every response carries "Connection: close". After it is written the
connection is shut down, so there is no keep-alive bookkeeping here:

    NEW ──► ACTIVE ──► CLOSING ──► CLOSED
             │                       ▲
             └── timeout / error ────┘

=============================================================================
TIMEOUTS
=============================================================================

A client that connects and never sends a byte would otherwise pin a worker
thread forever. settimeout() makes every blocking read/write on the socket
(and therefore on rfile/wfile) raise socket.timeout - an OSError - after
`timeout` seconds, which ends that connection only.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional
import uuid


logger = logging.getLogger(__name__)

# Upper bound on the whole close-time drain, not per recv()
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and idempotent close()."""
    NEW = "new"          # Just accepted
    ACTIVE = "active"    # Streams open, request/response in flight
    CLOSING = "closing"  # Shutdown sequence running
    CLOSED = "closed"    # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Buffer size for the rfile/wfile wrappers.
        timeout: Per-operation socket timeout in seconds (None = block).
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    _rfile: Optional[BinaryIO] = field(default=None, repr=False)
    _wfile: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking with a timeout: reads wait, but never forever
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def rfile(self) -> BinaryIO:
        """Buffered binary reader over the socket (created on first use)."""
        if self._rfile is None:
            self._rfile = self.socket.makefile("rb", buffering=self.buffer_size)
            self.state = ConnectionState.ACTIVE
        return self._rfile

    @property
    def wfile(self) -> BinaryIO:
        """Buffered binary writer over the socket (created on first use)."""
        if self._wfile is None:
            self._wfile = self.socket.makefile("wb", buffering=self.buffer_size)
            self.state = ConnectionState.ACTIVE
        return self._wfile

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send raw response bytes straight to the socket.

        Used for responses produced outside the request pipeline (503 when
        the worker queue is full). Uses sendall() so nothing is left
        half-sent by a short write.

        Returns:
            True if the send succeeded, False if the client is gone.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING: Properly terminate the connection
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. flush + close the file wrappers (makefile() objects hold a
           reference; the fd is only released once they are closed)
        2. shutdown(SHUT_WR): send FIN, telling the client we're done
        3. drain whatever the client still sends, so the kernel doesn't
           answer with RST and destroy the response in flight; at most
           DRAIN_TIMEOUT seconds in total, however the client trickles
        4. close(): release the file descriptor
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        self.state = ConnectionState.CLOSING

        for stream in (self._wfile, self._rfile):
            if stream is None:
                continue
            try:
                stream.close()  # flushes the writer first
            except OSError as e:
                logger.debug(f"[{self.id}] Error closing stream: {e}")

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {time.time() - self.created_at:.3f}s")

    def _drain(self, budget: float = DRAIN_TIMEOUT):
        """Read and discard client bytes until EOF or `budget` runs out."""
        deadline = time.monotonic() + budget
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug(f"[{self.id}] Drain cut short after {budget}s")
                    return
                self.socket.settimeout(remaining)
                if not self.socket.recv(4096):
                    return
        except OSError:
            return  # timeout or reset: nothing left worth reading

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allow `with conn:` so the socket is closed however handling ends:

            with conn:
                server.handle_stream(conn.rfile, conn.wfile, conn.address)
            # Connection closed here
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
