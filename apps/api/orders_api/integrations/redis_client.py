from __future__ import annotations

import socket
from typing import BinaryIO
from urllib.parse import urlparse


class RedisProtocolError(RuntimeError):
    pass


class RedisClient:
    """Minimal RESP2 client, one connection per command."""

    def __init__(self, redis_url: str, socket_timeout_s: float = 2.0) -> None:
        parsed = urlparse(redis_url)
        if parsed.scheme != "redis" or not parsed.hostname:
            raise ValueError("REDIS_URL must use redis:// scheme and include a host")

        self.host = parsed.hostname
        self.port = parsed.port or 6379
        self.db = int(parsed.path.removeprefix("/") or 0)
        self.password = parsed.password
        self.socket_timeout_s = socket_timeout_s

    def execute(self, *parts: str, timeout_s: float | None = None) -> object:
        payload = _encode_command(*parts)
        timeout = timeout_s if timeout_s is not None else self.socket_timeout_s
        with (
            socket.create_connection((self.host, self.port), timeout=timeout) as conn,
            conn.makefile("rb") as reader,
        ):
            if self.password:
                conn.sendall(_encode_command("AUTH", self.password))
                _read_response(reader)
            if self.db:
                conn.sendall(_encode_command("SELECT", str(self.db)))
                _read_response(reader)

            conn.sendall(payload)
            return _read_response(reader)

    def ping(self) -> bool:
        return self.execute("PING") == "PONG"


class RedisQueue:
    """Reliable list queue: ``BRPOPLPUSH`` into a processing list, ``LREM`` to ack.

    A message stays in ``<name>:processing`` until it is acked or requeued,
    so a crash between receive and ack leaves it recoverable.
    """

    def __init__(self, client: RedisClient, name: str) -> None:
        self.client = client
        self.name = name
        self.processing_name = f"{name}:processing"

    def push(self, raw: str) -> int:
        return int(self.client.execute("LPUSH", self.name, raw))

    def reserve(self, block_s: int = 5) -> str | None:
        result = self.client.execute(
            "BRPOPLPUSH",
            self.name,
            self.processing_name,
            str(block_s),
            timeout_s=self.client.socket_timeout_s + block_s,
        )
        if result is None or result == []:
            return None
        return str(result)

    def ack(self, raw: str) -> None:
        self.client.execute("LREM", self.processing_name, "1", raw)

    def requeue(self, raw: str) -> None:
        self.client.execute("RPUSH", self.name, raw)
        self.ack(raw)

    def recover(self) -> int:
        moved = 0
        while self.client.execute("RPOPLPUSH", self.processing_name, self.name) is not None:
            moved += 1
        return moved


def _encode_command(*parts: str) -> bytes:
    chunks = [b"*%d\r\n" % len(parts)]
    for part in parts:
        data = str(part).encode()
        chunks.append(b"$%d\r\n%s\r\n" % (len(data), data))
    return b"".join(chunks)


def _read_response(reader: BinaryIO) -> object:
    line = reader.readline()
    if not line.endswith(b"\r\n"):
        raise RedisProtocolError("Redis connection closed")

    kind, body = line[:1], line[1:-2]
    if kind == b"+":
        return body.decode()
    if kind == b"-":
        raise RedisProtocolError(body.decode())
    if kind == b":":
        return int(body)
    if kind == b"$":
        size = int(body)
        if size == -1:
            return None
        data = reader.read(size + 2)
        if len(data) != size + 2 or not data.endswith(b"\r\n"):
            raise RedisProtocolError("Redis bulk response truncated")
        return data[:-2].decode()
    if kind == b"*":
        length = int(body)
        if length == -1:
            return None
        return [_read_response(reader) for _ in range(length)]

    raise RedisProtocolError(f"Unsupported Redis response type {kind!r}")
