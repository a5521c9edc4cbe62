from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Tuple
import logging, threading

from ..protocol import codec
from ..protocol.framing import FrameReader
from ..protocol.router import BlockRouter
from .connection import VideohubConnection
from .state import DeviceSnapshot, DeviceState

if TYPE_CHECKING:
    from ..config import VideohubConfig

log = logging.getLogger(__name__)

@dataclass
class Videohub:
    """
    Client for a Blackmagic Videohub SDI router (Videohub Ethernet Protocol, TCP 9990).

    After connect() a background reader mirrors the device's status blocks into
    `state`. Commands are fire-and-forget: they return True once written to the
    socket, False if the write failed and the command was dropped.
    """
    host: str
    port: int = 9990
    timeout: float = 5.0
    reconnect_attempts: int = 3
    reconnect_backoff: float = 0.5
    state: DeviceState = field(default_factory=DeviceState)

    # internal
    _conn: Optional[VideohubConnection] = None
    _reader: Optional[FrameReader] = None
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def from_config(cls, cfg: "VideohubConfig") -> "Videohub":
        return cls(cfg.host, cfg.port, timeout=cfg.timeout_s,
                   reconnect_attempts=cfg.reconnect_attempts,
                   reconnect_backoff=cfg.reconnect_backoff_s)

    # --- connection ---
    def connect(self) -> None:
        """Connect and start the reader thread. Raises ConnectionError if the hub is unreachable."""
        if self._reader and self._reader.is_alive():
            return
        if self._conn:
            # reader died; drop the old socket before opening a new one
            self._conn.close()
        self._conn = VideohubConnection(self.host, self.port, self.timeout,
                                        self.reconnect_attempts, self.reconnect_backoff)
        self._conn.connect()
        self._stop.clear()
        self._reader = FrameReader(self._conn, BlockRouter(self.state), self._stop,
                                   retry_interval=max(self.reconnect_backoff, 0.1))
        self._reader.start()

    def disconnect(self, timeout: float = 2.0) -> None:
        """Stop the reader and close the socket; waits for the reader to exit."""
        self._stop.set()
        if self._conn:
            self._conn.close()
        if self._reader:
            self._reader.join(timeout)
            if self._reader.is_alive():
                log.warning("Reader thread did not stop within %.1fs", timeout)
            self._reader = None
        self._conn = None

    def __enter__(self) -> "Videohub":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.disconnect()

    def _send(self, command: str) -> bool:
        if not self._conn:
            raise RuntimeError("Videohub is not connected.")
        return self._conn.send(command)

    # --- commands ---
    def route(self, destination: int, source: int) -> bool:
        """Route input `source` to output `destination`."""
        return self._send(codec.encode_routes([(destination, source)]))

    def bulk_route(self, routes: Iterable[Tuple[int, int]]) -> bool:
        """
        Send all (destination, source) pairs in one routing block, in the given order.
        The hub applies them in order, so a later entry for the same output wins.
        """
        return self._send(codec.encode_routes(routes))

    def input_label(self, source: int, label: str) -> bool:
        return self._send(codec.encode_label(codec.INPUT_LABELS, source, label))

    def output_label(self, destination: int, label: str) -> bool:
        return self._send(codec.encode_label(codec.OUTPUT_LABELS, destination, label))

    # --- state ---
    def snapshot(self) -> DeviceSnapshot:
        return self.state.snapshot()

    def wait_for_state(self, timeout: float = 5.0) -> bool:
        """Wait until the initial routing dump has been applied."""
        return self.state.wait_for_block(codec.VIDEO_OUTPUT_ROUTING, timeout)
