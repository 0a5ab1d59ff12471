import io
import socket
import threading
import time

import pytest

from loopfetch import client
from loopfetch.client import (
    ClientError,
    FileNotOpenedError,
    connect_server,
    iter_download,
    request_file,
    run_client,
)
from loopfetch.server import ACK_FAILED, ACK_OPENED, BUFFER_SIZE, FileServer


def _serve_once(handler):
    listener = socket.create_server(("127.0.0.1", 0))
    address = listener.getsockname()

    def run():
        try:
            conn, _ = listener.accept()
            with conn:
                handler(conn)
        finally:
            listener.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return address, thread


@pytest.fixture
def file_server():
    server = FileServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    thread.join(5)
    server.close()


def test_connect_server_retries_until_listening():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    address = sock.getsockname()

    def start_listening():
        time.sleep(0.3)
        sock.listen(1)

    thread = threading.Thread(target=start_listening, daemon=True)
    thread.start()
    try:
        conn = connect_server(address, 0.05)
        with conn:
            assert conn.getpeername() == address
    finally:
        thread.join(5)
        sock.close()


def test_request_file_sends_path_and_returns_socket():
    received = []

    def handler(conn):
        received.append(conn.recv(4096))
        conn.sendall(ACK_OPENED)

    address, thread = _serve_once(handler)
    sock = request_file(address, "some/file.txt")
    with sock:
        assert sock.gettimeout() is None
    thread.join(5)
    assert received == [b"some/file.txt"]


def test_request_file_negative_ack_raises():
    def handler(conn):
        conn.recv(4096)
        conn.sendall(ACK_FAILED)

    address, thread = _serve_once(handler)
    with pytest.raises(FileNotOpenedError, match="File not opened on server"):
        request_file(address, "missing")
    thread.join(5)


def test_request_file_closed_without_ack_raises():
    def handler(conn):
        conn.recv(4096)

    address, thread = _serve_once(handler)
    with pytest.raises(FileNotOpenedError):
        request_file(address, "missing")
    thread.join(5)


def test_request_file_ack_timeout(monkeypatch):
    monkeypatch.setattr(client, "ACK_TIMEOUT", 0.2)
    done = threading.Event()

    def handler(conn):
        conn.recv(4096)
        done.wait(5)

    address, thread = _serve_once(handler)
    with pytest.raises(ClientError, match="recv"):
        request_file(address, "slow")
    done.set()
    thread.join(5)


def test_file_not_opened_is_caught_as_client_error():
    def handler(conn):
        conn.recv(4096)
        conn.sendall(ACK_FAILED)

    address, thread = _serve_once(handler)
    with pytest.raises(ClientError) as excinfo:
        request_file(address, "missing")
    thread.join(5)
    assert isinstance(excinfo.value, FileNotOpenedError)


def test_iter_download_strips_padding():
    data = b"hello world"

    def handler(conn):
        conn.recv(4096)
        conn.sendall(ACK_OPENED)
        conn.sendall(data.ljust(BUFFER_SIZE, b"\0"))

    address, thread = _serve_once(handler)
    assert b"".join(iter_download(address, "f")) == data
    thread.join(5)


def test_iter_download_multiple_blocks():
    data = b"x" * (BUFFER_SIZE + 904)

    def handler(conn):
        conn.recv(4096)
        conn.sendall(ACK_OPENED)
        conn.sendall(data[:BUFFER_SIZE])
        conn.sendall(data[BUFFER_SIZE:].ljust(BUFFER_SIZE, b"\0"))

    address, thread = _serve_once(handler)
    chunks = list(iter_download(address, "f"))
    assert all(chunks)
    assert b"".join(chunks) == data
    thread.join(5)


def test_run_client_against_file_server(file_server, tmp_path):
    data = bytes(range(1, 256)) * 50
    path = tmp_path / "payload.bin"
    path.write_bytes(data)
    out = io.BytesIO()
    run_client(file_server.address, str(path), out)
    assert out.getvalue() == data + b"\n"


def test_run_client_missing_file(file_server, tmp_path):
    out = io.BytesIO()
    with pytest.raises(FileNotOpenedError):
        run_client(file_server.address, str(tmp_path / "absent"), out)
    assert out.getvalue() == b""


def test_run_client_empty_file_prints_newline(file_server, tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    out = io.BytesIO()
    run_client(file_server.address, str(path), out)
    assert out.getvalue() == b"\n"