"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Ties configuration, the socket layer, the thread pool, the request parser,
the middleware pipeline and the static file handler together.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. ACCEPT          SocketServer.accept() → Connection
    2. QUEUE           ThreadPool.submit(_process_connection)
                       (queue full → 503 and close, right away)
    3. PARSE           RequestParser reads conn.rfile line by line
                       (malformed → 400 / 414 / 431 and close)
    4. PIPELINE        LoggingMiddleware → ValidationMiddleware → handler
                       (not GET / not HTTP/1.1 / not "/..." → 400)
    5. RESPOND         HTTPResponse.write_to(conn.wfile)
    6. CLOSE           shutdown(SHUT_WR), drain, close

Exactly one request per connection; every response says
"Connection: close".

=============================================================================
FAULT ISOLATION
=============================================================================

Everything that can go wrong with one client is caught at the connection
boundary (handle_stream / _process_connection), logged with the connection
id, and ends THAT connection only:

    HTTPParseError          complete error response, then close
    handler exception       500 if nothing was written yet, then close
    OSError on read/write   (timeout, reset, broken pipe) just close

Nothing per-request is shared between worker threads: each connection has
its own worker thread, socket, request, resolved target and open file, so a
client that stalls holds up nobody else.

=============================================================================
THE DOCUMENT ROOT
=============================================================================

start() chdir()s into config.root. From then on every path the handler
touches is relative to the working directory, and normalize() guarantees
none of them climbs above it.

=============================================================================
"""

import logging
import os
import time
from typing import BinaryIO, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import StaticFileHandler
from .http import (
    HTTPParseError,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    error_response,
)
from .middleware import LoggingMiddleware, MiddlewarePipeline, ValidationMiddleware


logger = logging.getLogger(__name__)


class StartupError(Exception):
    """
    The server could not start: invalid configuration, a document root that
    cannot be entered, or an address that cannot be bound.

    Raised before any connection is accepted.
    """


class StaticFileServer:
    """
    HTTP/1.1 static file and directory listing server.

    =========================================================================
    USAGE
    =========================================================================

        # Blocking, with logging set up and Ctrl+C handling
        StaticFileServer(ServerConfig(root="public", port=8000)).run()

        # Step by step (tests, embedding)
        server = StaticFileServer(ServerConfig(host="127.0.0.1", port=0))
        server.start()                  # chdir + pool + bind; may raise
        print(server.port)              # the port the OS picked
        threading.Thread(target=server.serve_forever).start()
        ...
        server.stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Build the components. Nothing touches the OS until start().

        Args:
            config: Server configuration. Defaults if not provided.
        """
        self.config = config or ServerConfig()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(
            max_line_size=self.config.max_line_size,
            max_headers=self.config.max_headers,
        )

        # Logging outermost so rejected requests are logged too
        self._access_log = LoggingMiddleware(log_format=self.config.log_format)
        self._middleware = (MiddlewarePipeline()
            .add(self._access_log)
            .add(ValidationMiddleware()))
        self._handler = self._middleware.wrap(StaticFileHandler().handle)

        self._started = False

    @property
    def port(self) -> int:
        """The bound port (the OS-chosen one when configured with port 0)."""
        return self._socket_server.address[1]

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server and serve until SIGINT/SIGTERM (blocking).

        Raises:
            StartupError: If the server cannot start.
        """
        self._setup_logging()
        self.start()

        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def start(self):
        """
        Validate config, enter the document root, start workers and bind.

        Raises:
            StartupError: Describing what failed.
        """
        try:
            self.config.validate()
        except ValueError as e:
            raise StartupError(f"Invalid configuration: {e}") from e

        try:
            os.chdir(self.config.root)
        except OSError as e:
            raise StartupError(f"Cannot serve directory {self.config.root!r}: {e}") from e

        self._thread_pool.start()

        try:
            self._socket_server.bind()
        except OSError as e:
            self._thread_pool.shutdown(wait=False)
            raise StartupError(
                f"Cannot bind to {self.config.host}:{self.config.port}: {e}"
            ) from e

        self._started = True
        logger.info(
            f"Serving {os.getcwd()} on http://{self.config.host}:{self.port}/ "
            f"({self.config.min_workers} workers ready)"
        )

    def serve_forever(self):
        """Accept connections until stop() is called, then shut down."""
        if not self._started:
            self.start()

        try:
            self._socket_server.serve_forever(self._handle_connection)
        finally:
            self._shutdown()

    def stop(self):
        """Ask the accept loop to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        """Let in-flight connections finish, then stop the workers."""
        logger.info("Shutting down server...")
        logger.debug(f"Worker pool: {self._thread_pool.stats}")
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout or 30.0)
        self._started = False
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs in the accept loop).

        Never blocks: if the queue is full the client gets 503 at once.
        """
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                block=False,
            )
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Not accepting connections: {e}")
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            response = error_response(HTTPStatus.SERVICE_UNAVAILABLE)
            conn.send_response(response.to_bytes(self.config.server_name))
            conn.close()

    def _process_connection(self, conn: Connection):
        """Handle one connection from start to close (runs in a worker)."""
        with conn:
            try:
                self.handle_stream(conn.rfile, conn.wfile, conn.address, conn.id)
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def handle_stream(
        self,
        rfile: BinaryIO,
        wfile: BinaryIO,
        client_address: tuple[str, int] = ("", 0),
        conn_id: str = "-",
    ) -> Optional[HTTPResponse]:
        """
        Run one HTTP exchange over a pair of binary streams.

        Reads one request head from `rfile` and writes one complete
        response to `wfile`. Works on sockets and on io.BytesIO alike.

        Args:
            rfile: Readable binary stream (request side).
            wfile: Writable binary stream (response side).
            client_address: Peer (ip, port), for logs.
            conn_id: Connection id, for logs.

        Returns:
            The response that was sent, or None if the client sent nothing
            or went away mid-read.
        """
        started = time.perf_counter()
        try:
            request = self._parser.parse(rfile, client_address)
        except HTTPParseError as e:
            logger.warning(
                f"[{conn_id}] Bad request from {client_address[0]}: {e} "
                f"({int(e.status_code)})"
            )
            response = error_response(e.status_code)
            self._access_log.log_unparsed(client_address, response, started)
            self._write(response, wfile, conn_id)
            return response
        except OSError as e:
            logger.debug(f"[{conn_id}] Read failed: {e}")
            return None

        if request is None:
            logger.debug(f"[{conn_id}] Client closed without sending a request")
            return None

        try:
            response = self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn_id}] Handler error: {e}")
            response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        self._write(response, wfile, conn_id)
        return response

    def _write(self, response: HTTPResponse, wfile: BinaryIO, conn_id: str):
        try:
            response.write_to(wfile, self.config.server_name, self.config.buffer_size)
        except OSError as e:
            # Some bytes may be out already; the only safe move is to close
            logger.warning(f"[{conn_id}] Response aborted: {e}")
