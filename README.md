# redigo

A small in-memory key-value store. It runs as a TCP server, speaks a subset of
the RESP3 protocol, and comes with a Python client and an interactive shell.

Supported commands: `GET`, `SET`, `DEL`, `RPUSH`, `RPOP`, `LPUSH`, `LPOP`,
`LLEN`, `LINDEX` and `PING`. Values are strings or lists of strings. The
server matches command names exactly, so they must be sent in upper case;
the interactive shell upper-cases them for you.

## Installation

```
pip install .
```

## Running the server

```
redigo-server --ip 127.0.0.1 --port 6543
```

The same command is available as `python -m redigo.server_main`.

Options (each also accepted with a single dash, e.g. `-port`):

- `--ip`: IPv4 address to bind (default `127.0.0.1`)
- `--port`: port to bind, 0 to 65535 (default `6543`)
- `--message_size`: largest single message in bytes (default `10240`)
- `--worker_amount`: number of workers serving connections (default `10`)
- `--keep_alive`: seconds a connection stays open with no traffic (default `15`)
- `--shutdown`: seconds given to workers to finish on shutdown (default `15`)

The server logs JSON lines to standard output. Stop it with Ctrl+C (SIGINT)
or SIGTERM; workers get the shutdown grace period to finish.

Each worker serves one connection at a time, so `--worker_amount` is also the
number of clients served at once; further clients wait in a queue.

How the server answers:

- A missing key gives a null reply (`_`) for `GET`, `RPOP`, `LPOP` and
  `LINDEX`, and `LINDEX` with an index out of range does the same.
- Using a key with the wrong kind of value, or `LLEN` on a key that does not
  hold a list, gives an error reply and keeps the connection open.
- A message larger than `--message_size` gives
  `-Call exceeded size allowed` and keeps the connection open.
- A malformed request gives `-Command malformed`, and an unknown command
  `-Command not found`. The server closes the connection after either reply.
- Several commands sent in one write are answered together, in order. A
  command split across several writes is answered once it is complete.

## Interactive shell

```
redigo-cli --ip 127.0.0.1 --port 6543
```

The same command is available as `python -m redigo.cli`.

Enter commands such as `SET name value`, `GET name`, `RPUSH cats Niji Anubis`,
`LINDEX cats 0` or `PING`. Words are separated by spaces, so values cannot
contain spaces. Results are printed after `- `, with `- OK` for commands that
return nothing. Type `EXIT` or end the input to leave.

`redigo.cli.repl(client, lines, out)` runs the same loop over any iterable of
lines and writes to any text stream.

## Using the client from Python

```python
import socket

from redigo.client import Client

with socket.create_connection(("127.0.0.1", 6543)) as conn:
    client = Client(conn)
    client.set("Arturo", "26")
    print(client.get("Arturo"))          # "26"
    client.lpush("Gatos", "Niji", "Anubis")
    print(client.lpop("Gatos"))          # "Anubis"
    print(client.llen("Gatos"))          # 1
    print(client.lindex("Gatos", 0))     # "Niji"
    client.delete("Gatos")
    print(client.ping())                 # "PONG"
```

`Client` does not own the connection; close it yourself.

A key that does not exist gives an empty string from `get`, `rpop`, `lpop`
and `lindex`. The server's error replies are raised as
`redigo.errors.RedigoError` of kind `ErrorKind.ERROR_RECEIVED`, with the
reply text in its `context["text"]`. A failed send raises a `RedigoError` of
kind `ErrorKind.UNABLE_TO_SEND_REQUEST`, and a connection closed by the
server raises `EOFError`.

## Running a server from Python

```python
from redigo.server import Configuration, Server

server = Server(Configuration(ip_address="127.0.0.1", port=6543))
print(server.address)
server.run()
```

`Server` binds the port and starts its workers when it is created, and raises
a `RedigoError` of kind `ErrorKind.UNABLE_TO_CREATE_SERVER` when it cannot
bind. `run()` blocks until `Server.stop()` is called from another thread or a
signal arrives, then shuts the workers down. Port `0` picks a free port,
which `server.address` reports.

## Lower-level pieces

- `redigo.cache.Cache`: the key store; hold it with a `with` block while
  calling its methods.
- `redigo.parser.RespParser` and `redigo.parser.select_command`: parsing of
  requests and replies, and turning a request into a callable run against a
  `Cache`.
- `redigo.encoding`: `blob_string`, `integer`, `null`, `error` and `pong`
  build reply bytes.

## What it does not do

- Data lives in memory only; nothing is written to disk, and it is lost when
  the server stops.
- There is no RESP handshake (`HELLO`), no authentication, no key expiry and
  no commands beyond those listed above.
- Only RESP arrays of blob strings are accepted as requests.

## Tests

```
pip install .[test]
pytest
```