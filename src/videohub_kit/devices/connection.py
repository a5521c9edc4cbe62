from __future__ import annotations
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple
import logging, socket, threading

from ..protocol.codec import TERMINATOR, escape_control

log = logging.getLogger(__name__)

@dataclass
class VideohubConnection:
    host: str
    port: int = 9990  # Videohub Ethernet Protocol port
    timeout: float = 5.0
    reconnect_attempts: int = 3
    reconnect_backoff: float = 0.5

    # internal
    _sock: Optional[socket.socket] = None
    _rfile: Optional[BinaryIO] = None
    _epoch: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _closed: threading.Event = field(default_factory=threading.Event, repr=False)

    # --- connection ---
    def connect(self) -> None:
        """Open the TCP connection. Failure here is fatal: ConnectionError, no retry."""
        with self._lock:
            self._closed.clear()
            try:
                self._open()
            except OSError as e:
                raise ConnectionError(f"Failed to connect to Videohub at {self.host}:{self.port}: {e}") from e

    def _open(self) -> None:
        sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        # blocking from here on; the reader sits in readline() until data or shutdown
        sock.settimeout(None)
        self._sock = sock
        self._rfile = sock.makefile("rb")
        self._epoch += 1
        log.info("Connected to Videohub %s:%d", self.host, self.port)

    def _teardown(self) -> None:
        sock, rfile = self._sock, self._rfile
        self._sock = None
        self._rfile = None
        if sock:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already disconnected
            sock.close()
        if rfile:
            try:
                rfile.close()
            except OSError:
                pass

    def close(self) -> None:
        self._closed.set()
        with self._lock:
            self._teardown()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def reader(self) -> Tuple[int, Optional[BinaryIO]]:
        """(epoch, read file) of the current socket; the epoch identifies it for reconnect()."""
        with self._lock:
            return self._epoch, self._rfile

    def reconnect(self, stale_epoch: Optional[int] = None) -> bool:
        """
        Close the current socket and connect again.

        `stale_epoch` is the epoch the failing operation used; if the socket has been
        replaced since then, nothing is done. Up to `reconnect_attempts` tries are made
        with doubling backoff. Returns False if the connection was closed meanwhile;
        raises ConnectionError when every attempt fails.
        """
        with self._lock:
            if self._closed.is_set():
                return False
            if stale_epoch is not None and stale_epoch != self._epoch:
                return True
            log.warning("Reconnecting to Videohub %s:%d...", self.host, self.port)
            self._teardown()
            attempts = max(1, self.reconnect_attempts)
            delay = self.reconnect_backoff
            for attempt in range(1, attempts + 1):
                try:
                    self._open()
                    return True
                except OSError as e:
                    log.warning("Reconnect attempt %d/%d failed: %s", attempt, attempts, e)
                    if attempt == attempts:
                        raise ConnectionError(
                            f"Could not reconnect to Videohub at {self.host}:{self.port} "
                            f"after {attempts} attempt(s): {e}") from e
                if self._closed.wait(delay):
                    return False
                delay *= 2
            return False

    # --- writes ---
    def send(self, command: str) -> bool:
        """
        Write one command block followed by the blank-line terminator.

        Returns True once the bytes are handed to the socket. On a write failure the
        command is dropped, one reconnect is made and False is returned.
        """
        wire = (command + TERMINATOR).encode("utf-8")
        with self._lock:
            if self._closed.is_set() or self._epoch == 0:
                raise RuntimeError("Videohub is not connected.")
            if not self._sock:
                # an earlier reconnect gave up; try once more before writing
                if not self.reconnect() or not self._sock:
                    raise RuntimeError("Videohub is not connected.")
            log.info("Sending message: [%s]", escape_control(command))
            epoch = self._epoch
            try:
                self._sock.sendall(wire)
                return True
            except OSError as e:
                log.error("Error sending command to Videohub: %s", e)
            self.reconnect(stale_epoch=epoch)
            return False
