"""Tests for the connection manager: connect, send, reconnect."""

import threading
import time

import pytest

from videohub_kit.devices.connection import VideohubConnection
from conftest import recv_blocks


def _conn(**kw):
    kw.setdefault("reconnect_backoff", 0.01)
    return VideohubConnection("10.0.0.5", **kw)


def test_connect_uses_default_port(fake_hub):
    conn = _conn()
    conn.connect()
    assert fake_hub.addresses == [("10.0.0.5", 9990)]
    assert conn.connected
    conn.close()
    assert not conn.connected


def test_startup_failure_is_fatal(fake_hub):
    """No retry when the first connection fails."""
    fake_hub.refuse = 5
    with pytest.raises(ConnectionError):
        _conn().connect()
    assert len(fake_hub.addresses) == 1


def test_send_appends_terminator(fake_hub):
    conn = _conn()
    conn.connect()
    assert conn.send("INPUT LABELS:\n2 Camera B") is True
    assert recv_blocks(fake_hub.device(0)) == b"INPUT LABELS:\n2 Camera B\n\n"
    conn.close()


def test_send_before_connect_raises():
    with pytest.raises(RuntimeError):
        _conn().send("VIDEO OUTPUT ROUTING:\n0 1")


def test_failed_send_drops_command_and_reconnects_once(fake_hub):
    conn = _conn()
    conn.connect()
    fake_hub.device(0).close()
    assert conn.send("VIDEO OUTPUT ROUTING:\n0 1") is False
    assert fake_hub.connects == 2
    # the dropped command is not replayed on the new socket
    assert conn.send("VIDEO OUTPUT ROUTING:\n1 1") is True
    assert recv_blocks(fake_hub.device(1)) == b"VIDEO OUTPUT ROUTING:\n1 1\n\n"
    conn.close()


def test_reconnect_is_bounded(fake_hub):
    conn = _conn(reconnect_attempts=3)
    conn.connect()
    fake_hub.refuse = 10
    with pytest.raises(ConnectionError):
        conn.reconnect()
    assert len(fake_hub.addresses) == 1 + 3
    assert not conn.connected


def test_reconnect_retries_with_backoff(fake_hub):
    conn = _conn(reconnect_attempts=3)
    conn.connect()
    fake_hub.refuse = 2
    assert conn.reconnect() is True
    assert fake_hub.connects == 2
    assert len(fake_hub.addresses) == 4
    conn.close()


def test_stale_epoch_reconnect_is_skipped(fake_hub):
    """Two failures on the same socket only reconnect once."""
    conn = _conn()
    conn.connect()
    epoch, _ = conn.reader()
    assert conn.reconnect(stale_epoch=epoch) is True
    assert conn.reconnect(stale_epoch=epoch) is True
    assert fake_hub.connects == 2
    conn.close()


def test_reconnect_after_close_does_nothing(fake_hub):
    conn = _conn()
    conn.connect()
    conn.close()
    assert conn.reconnect() is False
    assert fake_hub.connects == 1


def test_send_after_failed_reconnect_tries_again(fake_hub):
    conn = _conn(reconnect_attempts=1)
    conn.connect()
    fake_hub.refuse = 1
    with pytest.raises(ConnectionError):
        conn.reconnect()
    assert conn.send("VIDEO OUTPUT ROUTING:\n0 0") is True
    assert recv_blocks(fake_hub.device(1)) == b"VIDEO OUTPUT ROUTING:\n0 0\n\n"
    conn.close()


def test_close_during_send_reconnect_raises_runtime_error(fake_hub):
    """Closing while send() waits out a reconnect backoff fails cleanly."""
    conn = _conn(reconnect_attempts=1)
    conn.connect()
    fake_hub.refuse = 100
    with pytest.raises(ConnectionError):
        conn.reconnect()
    conn.reconnect_attempts = 3
    conn.reconnect_backoff = 1.0
    errors = []

    def send():
        try:
            conn.send("VIDEO OUTPUT ROUTING:\n0 0")
        except Exception as e:
            errors.append(e)

    t = threading.Thread(target=send)
    t.start()
    time.sleep(0.3)
    conn.close()
    t.join(5)
    assert not t.is_alive()
    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)
