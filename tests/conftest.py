"""Shared fixtures: an in-process stand-in for the Videohub's TCP side."""

import socket
import threading
import time

import pytest


class FakeHub:
    """Hands out socketpair() ends in place of TCP connections and keeps the device-side ends."""

    def __init__(self, greeting: bytes = b""):
        self.greeting = greeting
        self.peers = []
        self.addresses = []
        self.refuse = 0
        self._cond = threading.Condition()

    def create_connection(self, address, timeout=None, *args, **kwargs):
        with self._cond:
            self.addresses.append(address)
            if self.refuse > 0:
                self.refuse -= 1
                raise ConnectionRefusedError(111, "Connection refused")
            client, device = socket.socketpair()
            device.settimeout(2.0)
            if self.greeting:
                device.sendall(self.greeting)
            self.peers.append(device)
            self._cond.notify_all()
            return client

    @property
    def connects(self) -> int:
        return len(self.peers)

    def device(self, n: int = 0, timeout: float = 2.0) -> socket.socket:
        """Device side of the n-th successful connection, waiting for it if needed."""
        with self._cond:
            assert self._cond.wait_for(lambda: len(self.peers) > n, timeout), f"no connection #{n}"
            return self.peers[n]

    def close(self):
        for p in self.peers:
            p.close()


def recv_blocks(sock: socket.socket, count: int = 1) -> bytes:
    """Read from the device side until `count` blank-line terminated commands arrived."""
    data = b""
    while data.count(b"\n\n") < count:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def fake_hub(monkeypatch):
    hub = FakeHub()
    monkeypatch.setattr(socket, "create_connection", hub.create_connection)
    yield hub
    hub.close()
