"""Client that asks a file server for a file and streams its contents."""

from __future__ import annotations

import os
import socket
import sys
import time

__all__ = [
    "ACK_TIMEOUT",
    "RECV_SIZE",
    "RETRY_DELAY",
    "ClientError",
    "FileNotOpenedError",
    "connect_server",
    "iter_download",
    "request_file",
    "run_client",
]

RETRY_DELAY = 0.25
ACK_TIMEOUT = 2.0
RECV_SIZE = 4097


class ClientError(Exception):
    """Raised when talking to the server fails."""


class FileNotOpenedError(ClientError):
    """Raised when the server reports that it could not open the file."""


def connect_server(address, retry_delay=RETRY_DELAY):
    """Connect to ``address``, waiting and retrying for as long as it refuses.

    Each attempt is preceded by a pause of ``retry_delay`` seconds.
    """
    while True:
        time.sleep(retry_delay)
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            raise ClientError(f"socket() failed: {exc}") from exc
        try:
            sock.connect(address)
        except ConnectionRefusedError:
            sock.close()
            continue
        except OSError as exc:
            sock.close()
            raise ClientError(f"connect() failed: {exc}") from exc
        return sock


def _await_acknowledgment(sock):
    sock.settimeout(ACK_TIMEOUT)
    try:
        answer = sock.recv(1)
    except OSError as exc:
        raise ClientError(f"recv() failed: {exc}") from exc
    if not answer or answer[0] == 0:
        raise FileNotOpenedError("File not opened on server")
    sock.settimeout(None)


def request_file(address, file_path):
    """Send ``file_path`` to the server and wait for its acknowledgement.

    Returns the connected socket, ready to receive the file's contents.
    A connection reset while sending the path starts over with a new socket.
    """
    path_bytes = os.fsencode(file_path)
    while True:
        sock = connect_server(address)
        try:
            sock.sendall(path_bytes)
        except ConnectionResetError:
            sock.close()
            continue
        except OSError as exc:
            sock.close()
            raise ClientError(f"send() failed: {exc}") from exc
        break
    try:
        _await_acknowledgment(sock)
    except BaseException:
        sock.close()
        raise
    return sock


def iter_download(address, file_path):
    """Yield the contents of ``file_path`` as served, without block padding."""
    sock = request_file(address, file_path)
    with sock:
        while True:
            try:
                data = sock.recv(RECV_SIZE)
            except OSError as exc:
                raise ClientError(f"recv() failed: {exc}") from exc
            if not data:
                return
            text = data.split(b"\0", 1)[0]
            if text:
                yield text


def run_client(address, file_path, out=None):
    """Download ``file_path`` and write it to ``out`` followed by a newline.

    ``out`` is a binary stream; standard output is used when it is omitted.
    """
    if out is None:
        out = sys.stdout.buffer
    for chunk in iter_download(address, file_path):
        out.write(chunk)
    out.write(b"\n")
    out.flush()