"""Listener setup, browser launch and shutdown sequencing."""

import errno
import logging
import os
import random
import signal
import socket
import threading
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from werkzeug.serving import (
    LISTEN_QUEUE,
    BaseWSGIServer,
    ThreadedWSGIServer,
    WSGIRequestHandler,
    get_sockaddr,
    select_address_family,
)

from .errors import BindError

log = logging.getLogger("docserver.server")

# Unprivileged ports
PORT_RANGE = (1024, 65535)


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    # A fixed port is bound once; None picks random ports until one is free.
    port: Optional[int] = None
    port_range: Tuple[int, int] = PORT_RANGE
    open_browser: bool = True
    shutdown_attempts: int = 3
    shutdown_interval: float = 1.0


class QuietRequestHandler(WSGIRequestHandler):
    """Request handler that leaves per-request logging to the app."""

    # One request per connection; idle keep-alive connections never hold
    # up server_close().
    protocol_version = "HTTP/1.0"

    def log_request(self, code="-", size="-"):
        pass


class DrainingWSGIServer(ThreadedWSGIServer):
    """Threaded server whose server_close() waits for in-flight requests."""

    daemon_threads = False


def random_port(port_range: Tuple[int, int] = PORT_RANGE) -> int:
    return random.randint(*port_range)


def listen_socket(host: str, port: int) -> socket.socket:
    """Bound, listening socket; bind errors raise ``OSError``."""
    family = select_address_family(host, port)
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(get_sockaddr(host, port, family))
        sock.listen(LISTEN_QUEUE)
    except OSError:
        sock.close()
        raise
    return sock


def bind(app, config: ServerConfig, choose_port: Optional[Callable[[], int]] = None) -> BaseWSGIServer:
    """Bind a threaded WSGI server for ``app``.

    Ports already in use are skipped with a warning and another random port
    is tried.  Any other bind failure raises BindError.
    """
    if choose_port is None:
        choose_port = lambda: random_port(config.port_range)  # noqa: E731

    while True:
        port = config.port if config.port is not None else choose_port()
        try:
            sock = listen_socket(config.host, port)
        except OSError as e:
            if e.errno == errno.EADDRINUSE and config.port is None:
                log.warning("Port %d is already in use, trying another port...", port)
                continue
            raise BindError(f"Error starting server on port {port}: {e.strerror or e}") from e

        try:
            # Given a descriptor, Werkzeug skips its own bind (which exits
            # the process on failure).
            return DrainingWSGIServer(
                config.host, port, app, handler=QuietRequestHandler, fd=sock.fileno()
            )
        finally:
            # the server holds a duplicate of the descriptor
            sock.close()


def server_url(server: BaseWSGIServer) -> str:
    host = server.host
    if host in ("", "0.0.0.0", "::", "127.0.0.1", "::1"):
        host = "localhost"
    elif ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{server.port}/"


def open_browser(url: str, opener: Callable[[str], bool] = webbrowser.open) -> bool:
    """Point the default browser at ``url``; failures are only logged."""
    try:
        opened = opener(url)
    except webbrowser.Error as e:
        log.warning("Could not open browser: %s", e)
        return False
    if not opened:
        log.warning("Could not open browser for %s", url)
    return bool(opened)


class ShutdownSequencer:
    """Closes the server after SIGINT or SIGTERM.

    Closing stops the accept loop and waits for in-flight requests.  If that
    has not finished after ``attempts`` checks spaced ``interval`` seconds
    apart, the exit code reports a forced shutdown and ``serve`` terminates
    the process without waiting further.
    """

    def __init__(self, server: BaseWSGIServer, attempts: int = 3, interval: float = 1.0):
        self.server = server
        self.attempts = attempts
        self.interval = interval
        self.attempts_made = 0
        self.requested = threading.Event()
        self.closed = threading.Event()

    def install(self):
        signal.signal(signal.SIGINT, self.request)
        signal.signal(signal.SIGTERM, self.request)

    def request(self, signum=None, frame=None):
        self.requested.set()

    def _close(self):
        self.server.shutdown()
        self.server.server_close()
        self.closed.set()

    def run(self) -> int:
        """Block until shutdown is requested, close, and return the exit code."""
        # Short waits keep the main thread responsive to signals everywhere.
        while not self.requested.wait(0.5):
            pass

        threading.Thread(target=self._close, name="docserver-close", daemon=True).start()
        while self.attempts_made < self.attempts:
            print(f"\nShutting down server... ({self.attempts_made})", flush=True)
            self.attempts_made += 1
            if self.closed.wait(self.interval):
                print("Server stopped.", flush=True)
                return 0
        log.error("Server did not stop after %d attempts, exiting", self.attempts)
        return 1


def serve(app, config: ServerConfig) -> int:
    """Run ``app`` until a shutdown signal arrives; return the exit code."""
    server = bind(app, config)
    sequencer = ShutdownSequencer(server, config.shutdown_attempts, config.shutdown_interval)
    sequencer.install()

    threading.Thread(target=server.serve_forever, name="docserver", daemon=True).start()

    url = server_url(server)
    print(f"Serving at {url}", flush=True)
    print(f"Serving files from: {app.config['DOC_DIR']}", flush=True)
    print("Press Ctrl+C to stop the server", flush=True)
    if config.open_browser:
        open_browser(url)

    code = sequencer.run()
    if code != 0:
        # Request threads are not daemons; leave without waiting for them.
        os._exit(code)
    return code
