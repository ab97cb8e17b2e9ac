"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: accept loop, worker pool, parser, route table and
response writer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONE CONNECTION, ONE EXCHANGE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(_process_connection, conn)                       │
    │        │                                                             │
    │        ▼                                                             │
    │   RequestParser.parse(conn.reader)    ── HTTPParseError ──► 400      │
    │        │                                                             │
    │        ▼                                                             │
    │   Router.match(request)               ── no match ───────► 404      │
    │        │                                                             │
    │        ▼                                                             │
    │   strip prefix, run target            ── exception ──────► 500      │
    │        │                                                             │
    │        ▼                                                             │
    │   ResponseWriter.write(response)                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   conn.close()                        (always)                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A failure inside one connection task is logged and confined to that task;
the accept loop and other connections are unaffected.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .handlers import (
    handle_download_file,
    handle_echo,
    handle_upload_file,
    handle_user_agent,
)
from .http import (
    HTTPParseError,
    HTTPResponse,
    HTTPStatus,
    HttpVerb,
    RequestParser,
    ResponseWriter,
    Router,
    StaticTarget,
    StreamedPayload,
    UnexpectedEOFError,
    internal_error,
    not_found,
)
from .http.response import from_status


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("streamhttp.access")


def default_router() -> Router:
    """
    Build the built-in route table.

        GET   /             exact    static 200
        GET   /echo/        prefix   handle_echo
        GET   /user-agent   exact    handle_user_agent
        GET   /files/       prefix   handle_download_file
        POST  /files/       prefix   handle_upload_file
        ANY   ""            prefix   static 404   (catch-all, last)
    """
    router = Router()
    router.add_route(HttpVerb.GET, "/", StaticTarget(HTTPStatus.OK), exact=True)
    router.add_route(HttpVerb.GET, "/echo/", handle_echo, exact=False)
    router.add_route(HttpVerb.GET, "/user-agent", handle_user_agent, exact=True)
    router.add_route(HttpVerb.GET, "/files/", handle_download_file, exact=False)
    router.add_route(HttpVerb.POST, "/files/", handle_upload_file, exact=False)
    router.any("", StaticTarget(HTTPStatus.NOT_FOUND))
    return router


class HTTPServer:
    """
    Threaded HTTP/1.1 server, one request per connection.

    Usage:
        server = HTTPServer(ServerConfig(port=4221, root_dir="/tmp"))
        server.run()   # Blocks until SIGINT/SIGTERM or shutdown()

    Custom routes:
        router = Router()

        @router.get("/hello")
        def hello(config, request):
            return ok("hi")

        HTTPServer(config, router=router).run()
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.
            router: Route table. Defaults to default_router().
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(
            max_line_size=self.config.max_line_size,
            max_headers=self.config.max_headers,
        )
        self._router = router if router is not None else default_router()

    @property
    def router(self) -> Router:
        """The route table. Register routes before calling run()."""
        return self._router

    @property
    def address(self):
        """(host, port) actually bound, once the server is listening."""
        return self._socket_server.address

    def get(self, path: str, exact: bool = True):
        """Register a GET route on the server's router."""
        return self._router.get(path, exact)

    def post(self, path: str, exact: bool = True):
        """Register a POST route on the server's router."""
        return self._router.post(path, exact)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving. Blocks until shutdown.

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._thread_pool.start()

        root = self.config.base_dir()
        logger.info(f"Serving files from {root}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the accept loop to stop. run() returns shortly after."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging from config.log_level."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("streamhttp").setLevel(level)

    def _shutdown(self):
        """Stop accepting, let in-flight exchanges finish, stop workers."""
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by the accept loop: hand the connection to a worker."""
        try:
            self._thread_pool.submit(self._process_connection, conn)
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Rejecting connection: {e}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Run one request/response exchange (on a worker thread).

        Parse → route → strip prefix → dispatch → write → close.
        """
        with conn:
            # ─────────────────────────────────────────────────────────────
            # Parse
            # ─────────────────────────────────────────────────────────────
            conn.transition(ConnectionState.PARSING_REQUEST)
            try:
                request = self._parser.parse(conn.reader, conn.address)
            except UnexpectedEOFError as e:
                logger.debug(f"[{conn.id}] {e}")
                self._send_error(conn, HTTPStatus.BAD_REQUEST)
                return
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send_error(conn, HTTPStatus.BAD_REQUEST)
                return
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            request_line = f"{request.verb.value} {request.path}"

            # ─────────────────────────────────────────────────────────────
            # Route and dispatch
            # ─────────────────────────────────────────────────────────────
            conn.transition(ConnectionState.ROUTING)
            found = self._router.match(request)

            conn.transition(ConnectionState.DISPATCHING)
            try:
                if found is None:
                    response = not_found()
                else:
                    response = self._router.invoke(self.config, found, request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error for {request_line}: {e}")
                response = internal_error()

            # ─────────────────────────────────────────────────────────────
            # Write
            # ─────────────────────────────────────────────────────────────
            sent = self._write_response(conn, response)
            if sent is None:
                return

            access_logger.info(
                f'{conn.client_ip} "{request_line}" {int(response.status)} {sent}'
            )

    def _write_response(self, conn: Connection, response: HTTPResponse) -> Optional[int]:
        """
        Write head then body. Returns body bytes sent, or None on I/O failure.
        """
        writer = ResponseWriter(conn.writer, self.config.copy_buffer_size)
        conn.transition(ConnectionState.WRITING_RESPONSE)
        try:
            writer.write_head(response)
            if response.payload is not None:
                conn.transition(ConnectionState.STREAMING_BODY)
            return writer.write_body(response)
        except OSError as e:
            logger.warning(f"[{conn.id}] Write failed: {e}")
            return None
        finally:
            # write_body closes streamed payloads; this covers a failed head.
            if isinstance(response.payload, StreamedPayload):
                response.payload.close()

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Best-effort bare status response; the peer may already be gone."""
        try:
            ResponseWriter(conn.writer).write(from_status(status))
        except OSError as e:
            logger.debug(f"[{conn.id}] Could not send {int(status)}: {e}")


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the built-in routes.

    Example:
        app = create_app(ServerConfig(root_dir="/tmp"))
        app.run()
    """
    return HTTPServer(config)
