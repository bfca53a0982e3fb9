"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the server side of TCP and nothing else: it binds, accepts, and hands
every client over as a Connection. It never reads from a client.

=============================================================================
TWO STEPS
=============================================================================

    bind()            getaddrinfo → socket → options → bind → listen
                      (errors surface here: port in use, bad host, ...)

    serve_forever()   accept → Connection → callback, until shutdown()

Keeping them apart lets the caller report "address already in use" before
it blocks, and read the real port after asking for port 0.

=============================================================================
OPTIONS
=============================================================================

    SO_REUSEADDR   rebind right after a restart, despite TIME_WAIT
    TCP_NODELAY    small header writes are not held back by Nagle
    timeout 1.0    accept() wakes up once a second to see shutdown()

A failed accept() that concerns one client (reset before it was accepted)
or a passing shortage (out of file descriptors, buffers) is logged and
retried after a short pause. Only an error on the listening socket itself
ends the loop.

=============================================================================
SIGNALS
=============================================================================

In the main thread SIGINT and SIGTERM are routed to shutdown() for the
duration of serve_forever() and the previous handlers put back afterwards.
Anywhere else (tests, embedding) they are left alone; Python only allows
handlers in the main thread.

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]

ACCEPT_POLL_INTERVAL = 1.0
ACCEPT_RETRY_DELAY = 0.1

# accept() errors that leave the listening socket usable
TRANSIENT_ACCEPT_ERRORS = frozenset(
    getattr(errno, name) for name in (
        "ECONNABORTED", "ECONNRESET", "EPROTO", "EPERM", "EINTR",
        "EMFILE", "ENFILE", "ENOBUFS", "ENOMEM",
    )
    if hasattr(errno, name)
)


class SocketServer:
    """
    Accepts TCP clients and passes them on.

        server = SocketServer(config)
        server.bind()                     # OSError if it can't
        server.serve_forever(on_connect)  # until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: host, port, backlog, and the per-connection buffer_size
                and timeout.
        """
        self.config = config

        self._listener: Optional[socket.socket] = None
        self._stop_requested = threading.Event()
        self._saved_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """Where the server listens; the OS-chosen port once bound to port 0."""
        if self._listener is None:
            return (self.config.host, self.config.port)
        return self._listener.getsockname()[:2]

    def _listen_socket(self) -> socket.socket:
        family, type_, proto, _, sockaddr = socket.getaddrinfo(
            self.config.host, self.config.port,
            type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE,
        )[0]

        sock = socket.socket(family, type_, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(ACCEPT_POLL_INTERVAL)
            sock.bind(sockaddr)
            sock.listen(self.config.backlog)
        except OSError:
            sock.close()
            raise
        return sock

    def bind(self):
        """
        Open the listening socket.

        Raises:
            OSError: Unknown host, address in use, or no permission for the
                port.
        """
        try:
            self._listener = self._listen_socket()
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._stop_requested.clear()
        host, port = self.address
        logger.info(f"Listening on {host}:{port} (backlog {self.config.backlog})")

    def serve_forever(self, on_connect: ConnectionHandler):
        """
        Accept clients until shutdown(), then close the listening socket.

        Args:
            on_connect: Gets every new Connection, in the accept thread, so
                it must hand the work off rather than do it.
        """
        if self._listener is None:
            self.bind()

        self._install_signal_handlers()
        try:
            while not self._stop_requested.is_set():
                conn = self._accept()
                if conn is not None:
                    on_connect(conn)
        finally:
            self._restore_signal_handlers()
            self._close_listener()

    def _accept(self) -> Optional[Connection]:
        try:
            client, peer = self._listener.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if self._stop_requested.is_set():
                return None
            if isinstance(e, ConnectionError) or e.errno in TRANSIENT_ACCEPT_ERRORS:
                # One client or a passing resource shortage, not the listener
                logger.warning(f"Accept failed, retrying: {e}")
                self._stop_requested.wait(ACCEPT_RETRY_DELAY)
                return None
            logger.error(f"Listening socket failed, stopping: {e}")
            self._stop_requested.set()
            return None

        logger.debug(f"Accepted {peer[0]}:{peer[1]}")
        return Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
        )

    def shutdown(self):
        """Stop the accept loop. Fine from any thread or a signal handler."""
        if not self._stop_requested.is_set():
            logger.info("Stopping accept loop...")
            self._stop_requested.set()

    def _close_listener(self):
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        logger.info("Listening socket closed")

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not the main thread, leaving signal handlers alone")
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._saved_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signal_handlers(self):
        while self._saved_handlers:
            sig, handler = self._saved_handlers.popitem()
            signal.signal(sig, handler)
