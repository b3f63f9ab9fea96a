import socket
import threading

import pytest

from redigo.errors import ErrorKind, RedigoError
from redigo.server import Configuration, Server


@pytest.fixture
def running_server():
    server = Server(
        Configuration(
            ip_address="127.0.0.1",
            port=0,
            worker_amount=1,
            keep_alive=5,
            message_size_limit=10240,
            shutdown_tolerance=1,
        )
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    yield server
    server.stop()
    thread.join(timeout=10)


def _recv_exact(sock, size):
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def _request(server, *chunks, size):
    with socket.create_connection(server.address, timeout=5) as conn:
        for chunk in chunks:
            conn.sendall(chunk)
        return _recv_exact(conn, size)


def test_get_missing_key_returns_null(running_server):
    assert _request(running_server, b"*2\r\n$3\r\nGET\r\n$1\r\nR\r\n", size=3) == b"_\r\n"


def test_set_then_get(running_server):
    assert (
        _request(running_server, b"*3\r\n$3\r\nSET\r\n$1\r\nR\r\n$6\r\nREDIGO\r\n", size=3)
        == b"_\r\n"
    )
    assert (
        _request(running_server, b"*2\r\n$3\r\nGET\r\n$1\r\nR\r\n", size=12)
        == b"$6\r\nREDIGO\r\n"
    )


@pytest.mark.parametrize("command", [b"RPOP", b"LPOP"])
def test_pop_missing_key_returns_null(running_server, command):
    payload = b"*2\r\n$4\r\n" + command + b"\r\n$1\r\nV\r\n"
    assert _request(running_server, payload, size=3) == b"_\r\n"


def test_rpush_then_rpop_in_reverse_order(running_server):
    push = b"*6\r\n$5\r\nRPUSH\r\n$1\r\nV\r\n$6\r\nREDIGO\r\n$4\r\nNIJI\r\n$7\r\nBIGOTES\r\n$6\r\nANUBIS\r\n"
    assert _request(running_server, push, size=3) == b"_\r\n"
    pop = b"*2\r\n$4\r\nRPOP\r\n$1\r\nV\r\n"
    with socket.create_connection(running_server.address, timeout=5) as conn:
        for expected in (
            b"$6\r\nANUBIS\r\n",
            b"$7\r\nBIGOTES\r\n",
            b"$4\r\nNIJI\r\n",
            b"$6\r\nREDIGO\r\n",
        ):
            conn.sendall(pop)
            assert _recv_exact(conn, len(expected)) == expected


def test_lpush_lindex_llen_lpop(running_server):
    push = b"*6\r\n$5\r\nLPUSH\r\n$1\r\nV\r\n$6\r\nREDIGO\r\n$4\r\nNIJI\r\n$7\r\nBIGOTES\r\n$6\r\nANUBIS\r\n"
    assert _request(running_server, push, size=3) == b"_\r\n"
    assert (
        _request(running_server, b"*3\r\n$6\r\nLINDEX\r\n$1\r\nV\r\n$1\r\n5\r\n", size=3)
        == b"_\r\n"
    )
    assert (
        _request(running_server, b"*3\r\n$6\r\nLINDEX\r\n$1\r\nV\r\n$1\r\n2\r\n", size=10)
        == b"$4\r\nNIJI\r\n"
    )
    assert _request(running_server, b"*2\r\n$4\r\nLLEN\r\n$1\r\nV\r\n", size=4) == b":4\r\n"
    pop = b"*2\r\n$4\r\nLPOP\r\n$1\r\nV\r\n"
    with socket.create_connection(running_server.address, timeout=5) as conn:
        for expected in (
            b"$6\r\nANUBIS\r\n",
            b"$7\r\nBIGOTES\r\n",
            b"$4\r\nNIJI\r\n",
            b"$6\r\nREDIGO\r\n",
        ):
            conn.sendall(pop)
            assert _recv_exact(conn, len(expected)) == expected


@pytest.mark.parametrize(
    "payload",
    [
        b"*2\r\n$3\r\nSET\r\n$1\r\nR\r\n$6\r\nREDIGO\r\n",
        b"*4\r\n$3\r\nSET\r\n$1\r\nR\r\n$6\r\nREDIGO\r\n$1\r\nB\r\n",
    ],
)
def test_wrong_length_messages_return_error(running_server, payload):
    assert _request(running_server, payload, size=20) == b"-Command malformed\r\n"


def test_partial_message_answered_when_complete(running_server):
    response = _request(
        running_server,
        b"*3\r\n$3\r\nSET\r",
        b"\n$1\r\nC\r\n$4\r\nCATS\r\n",
        size=3,
    )
    assert response == b"_\r\n"


def test_multiple_messages_multiple_responses(running_server):
    response = _request(
        running_server,
        b"*3\r\n$3\r\nSET\r\n$1\r\nD\r\n$4\r\nDOGS\r\n*2\r\n$3\r\nGET\r\n$1\r\nD\r\n",
        size=13,
    )
    assert response == b"_\r\n$4\r\nDOGS\r\n"


def test_malformed_command_among_many_rejects_whole_batch(running_server):
    payload = (
        b"*5\r\n$5\r\nRPUSH\r\n$1\r\nA\r\n$7\r\nANIMALS\r\n$4\r\nNIJI\r\n$7\r\nBIGOTES\r\n"
        b"*2\r\n$4\r\nRPOP\r\n$1\r\nA\r\n*2\r\n$4\r\nLLEN\r\nA\r\n"
    )
    assert _request(running_server, payload, size=20) == b"-Command malformed\r\n"
    with running_server.cache:
        assert running_server.cache.delete("A") is None
        with pytest.raises(RedigoError) as info:
            running_server.cache.lindex("A", 0)
    assert info.value.kind is ErrorKind.KEY_NOT_FOUND


def test_del_removes_key(running_server):
    _request(running_server, b"*3\r\n$3\r\nSET\r\n$1\r\nR\r\n$6\r\nREDIGO\r\n", size=3)
    assert _request(running_server, b"*2\r\n$3\r\nDEL\r\n$1\r\nR\r\n", size=3) == b"_\r\n"
    assert _request(running_server, b"*2\r\n$3\r\nGET\r\n$1\r\nR\r\n", size=3) == b"_\r\n"


def test_ping_returns_pong(running_server):
    assert _request(running_server, b"*1\r\n$4\r\nPING\r\n", size=10) == b"$4\r\nPONG\r\n"


def test_stop_ends_run_and_closes_listener():
    server = Server(Configuration(port=0, worker_amount=2, shutdown_tolerance=1))
    address = server.address
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    assert _request(server, b"*1\r\n$4\r\nPING\r\n", size=10) == b"$4\r\nPONG\r\n"
    server.stop()
    thread.join(timeout=10)
    assert not thread.is_alive()
    with pytest.raises(OSError):
        socket.create_connection(address, timeout=2).close()


def test_invalid_address_raises_create_error():
    with pytest.raises(RedigoError) as info:
        Server(Configuration(ip_address="999.1.1.1", port=0, worker_amount=1))
    assert info.value.kind is ErrorKind.UNABLE_TO_CREATE_SERVER
    assert isinstance(info.value.cause, OSError)