# loopfetch

A minimal file-fetching pair over TCP on the loopback interface.

The client connects to the server and sends a file path. The server opens
that file and answers with a one-byte acknowledgement: `b"\x01"` if the file
could be opened, `b"\x00"` if not. After a positive answer it sends the file
in blocks of 4096 bytes, each padded with NUL bytes, and closes the
connection when a read returns nothing or a block begins with a NUL byte.
The server handles many clients at once from a single, non-blocking event
loop.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

Start the server:

```
loopfetch-server
```

In another terminal, fetch a file. The path is resolved on the server side:

```
loopfetch-client /etc/hostname
```

The file's contents are written to standard output, followed by a newline.
If the server cannot open the file, the client prints
"File not opened on server" to standard error and exits with status 1.

Both commands use `127.0.0.1` and, unless `--port` is given, a port in the
dynamic range 49152–65534 chosen by `loopfetch.cli.default_address`. The
same seed always gives the same port, so server and client meet without any
configuration. Either command accepts `--port N` to use another port.

While the server refuses connections, the client keeps retrying every
quarter of a second. Once the path is sent, it waits at most two seconds for
the acknowledgement.

The server prints a line to standard output for each file it opens or fails
to open, and reports errors through the `logging` module under the logger
`loopfetch.server`. Stop it with Ctrl-C.

## Library use

Serving files from your own code:

```python
from loopfetch.server import FileServer

with FileServer(("127.0.0.1", 50000)) as server:
    print("listening on", server.address)
    server.serve_forever()
```

`FileServer.address` is the `(host, port)` the server is bound to (pass port
`0` to let the system pick one). `poll()` handles whatever is ready right
now and returns the number of ready sockets, which is handy when driving the
server from another loop; `shutdown()` makes a running `serve_forever()`
return, and `close()` releases every socket and open file. `run_server(address)`
serves until interrupted. Setup or event-loop failures raise `ServerError`.

Fetching a file:

```python
import sys
from loopfetch.client import FileNotOpenedError, iter_download, run_client

try:
    for chunk in iter_download(("127.0.0.1", 50000), "/etc/hostname"):
        sys.stdout.buffer.write(chunk)
except FileNotOpenedError:
    print("the server could not open that file", file=sys.stderr)

# or, writing straight to a binary stream (standard output by default):
run_client(("127.0.0.1", 50000), "/etc/hostname", sys.stdout.buffer)
```

`request_file(address, file_path)` sends the path and waits for the
acknowledgement, returning the connected socket; `connect_server(address)`
only connects, retrying while refused. Failures are raised as `ClientError`,
with `FileNotOpenedError` as the case where the server could not open the
path.

## What it does not do

- It is meant for text. Blocks are NUL-padded, so the client keeps only the
  bytes before the first NUL of each received chunk, and the server stops at
  a block that begins with a NUL. Files containing NUL bytes arrive cut short.
- There is no authentication and no restriction on paths: the server opens
  any path it is given that its own process can read. Keep it on loopback.
- It only fetches; there is no upload, listing or resuming.