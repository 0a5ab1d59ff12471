"""Single-threaded TCP server that streams requested files in fixed-size blocks.

A client sends a file path (bytes up to the first NUL). The server answers with
one acknowledgement byte, ``b"\\x01"`` if the file could be opened and
``b"\\x00"`` otherwise. After a positive answer it sends the file in blocks of
:data:`BUFFER_SIZE` bytes, each padded with NUL bytes, and closes the
connection when a read returns nothing or a block begins with a NUL byte.
"""

from __future__ import annotations

import errno
import logging
import os
import selectors
import socket
import threading
from dataclasses import dataclass, field

__all__ = [
    "ACK_FAILED",
    "ACK_OPENED",
    "BUFFER_SIZE",
    "FileServer",
    "ServerError",
    "run_server",
]

BUFFER_SIZE = 4096
LISTEN_BACKLOG = 32767
ACK_OPENED = b"\x01"
ACK_FAILED = b"\x00"

_SERVE_INTERVAL = 0.05

log = logging.getLogger(__name__)


class ServerError(Exception):
    """Raised when the server cannot be set up or its event loop fails."""


@dataclass(eq=False)
class _Connection:
    sock: socket.socket
    fd: int | None = None
    outgoing: bytearray = field(default_factory=bytearray)


class FileServer:
    """Non-blocking file server bound to ``address`` (a ``(host, port)`` pair)."""

    def __init__(self, address):
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setblocking(False)
        try:
            self._listener.bind(address)
        except OSError as exc:
            self._listener.close()
            raise ServerError(f"bind() failed: {exc}") from exc
        try:
            self._listener.listen(LISTEN_BACKLOG)
        except OSError as exc:
            self._listener.close()
            raise ServerError(f"listen() failed: {exc}") from exc
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._listener, selectors.EVENT_READ, None)
        self._connections: dict[int, _Connection] = {}
        self._stop = threading.Event()
        self._closed = False

    @property
    def address(self):
        """The ``(host, port)`` the server listens on."""
        return self._listener.getsockname()

    def poll(self):
        """Handle whatever is ready right now; return the number of ready sockets."""
        return self._step(0)

    def serve_forever(self):
        """Run the event loop until :meth:`shutdown` is called."""
        self._stop.clear()
        while not self._stop.is_set():
            self._step(_SERVE_INTERVAL)

    def shutdown(self):
        """Ask a running :meth:`serve_forever` to return."""
        self._stop.set()

    def close(self):
        """Close every connection, open file and the listening socket."""
        if self._closed:
            return
        self._closed = True
        for conn in list(self._connections.values()):
            self._remove(conn)
        self._selector.unregister(self._listener)
        self._selector.close()
        self._listener.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _step(self, timeout):
        try:
            events = self._selector.select(timeout)
        except OSError as exc:
            raise ServerError(f"select() failed: {exc}") from exc
        for key, mask in events:
            conn = key.data
            if conn is None:
                self._accept()
            elif id(conn) not in self._connections:
                continue
            elif mask & selectors.EVENT_READ:
                self._read(conn)
            elif mask & selectors.EVENT_WRITE:
                self._write(conn)
        return len(events)

    def _accept(self):
        while True:
            try:
                sock, _ = self._listener.accept()
            except BlockingIOError:
                return
            except OSError as exc:
                log.error("accept() failed: %s", exc)
                return
            sock.setblocking(False)
            conn = _Connection(sock)
            self._connections[id(conn)] = conn
            self._selector.register(sock, selectors.EVENT_READ, conn)

    def _read(self, conn):
        try:
            data = conn.sock.recv(BUFFER_SIZE)
        except BlockingIOError:
            return
        except OSError as exc:
            log.error("recv() failed: fd: %d: %s", conn.sock.fileno(), exc)
            self._remove(conn)
            return
        self._open(conn, data.split(b"\0", 1)[0])

    def _open(self, conn, path):
        shown = os.fsdecode(path)
        try:
            conn.fd = os.open(path, os.O_RDONLY)
        except OSError as exc:
            sock_fd = conn.sock.fileno()
            log.error("open() failed: fd: %d: %s", sock_fd, exc)
            try:
                conn.sock.send(ACK_FAILED)
            except OSError as send_exc:
                log.error("send() failed: fd: %d: %s", sock_fd, send_exc)
            print(f"File descriptor {sock_fd} closed for file: {shown}", flush=True)
            self._remove(conn)
            return
        print(f"File descriptor {conn.fd} opened for file: {shown}", flush=True)
        conn.outgoing = bytearray(ACK_OPENED)
        self._selector.modify(conn.sock, selectors.EVENT_WRITE, conn)
        self._write(conn)

    def _write(self, conn):
        if not self._flush(conn):
            return
        try:
            chunk = os.read(conn.fd, BUFFER_SIZE)
        except OSError as exc:
            log.error("read failed: fd: %d: %s", conn.sock.fileno(), exc)
            self._remove(conn)
            return
        if not chunk or chunk[0] == 0:
            self._remove(conn)
            return
        conn.outgoing = bytearray(chunk.ljust(BUFFER_SIZE, b"\0"))
        self._flush(conn)

    def _flush(self, conn):
        """Send buffered bytes; return True once nothing is left to send."""
        while conn.outgoing:
            try:
                sent = conn.sock.send(conn.outgoing)
            except BlockingIOError:
                return False
            except OSError as exc:
                if exc.errno != errno.ECONNRESET:
                    log.error("send() failed: fd: %d: %s", conn.sock.fileno(), exc)
                self._remove(conn)
                return False
            del conn.outgoing[:sent]
        return True

    def _remove(self, conn):
        if self._connections.pop(id(conn), None) is None:
            return
        self._selector.unregister(conn.sock)
        conn.sock.close()
        if conn.fd is not None:
            os.close(conn.fd)
            conn.fd = None


def run_server(address):
    """Serve files on ``address`` until interrupted."""
    with FileServer(address) as server:
        server.serve_forever()