from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional, Union
import logging, threading

from . import codec
from .router import BlockRouter

if TYPE_CHECKING:
    from ..devices.connection import VideohubConnection

log = logging.getLogger(__name__)

ReadLine = Callable[[], bytes]


@dataclass(frozen=True)
class Block:
    """A header line ending in ':' plus its body lines (terminating blank line removed)."""
    name: str
    body: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return codec.encode_block(self.name, self.body)


@dataclass(frozen=True)
class Response:
    """A bare single-line reply such as 'ACK' or 'NAK'."""
    text: str


Frame = Union[Block, Response]


def _next_line(readline: ReadLine) -> str:
    raw = readline()
    if not raw:
        raise EOFError("Videohub closed the connection")
    line = raw.decode("utf-8", errors="replace")
    if not line.endswith("\n"):
        # a partial line is only returned at EOF
        raise EOFError("Videohub closed the connection mid-line")
    return line.rstrip("\n").rstrip("\r")


def read_frame(readline: ReadLine) -> Frame:
    """
    Read exactly one frame from `readline` (a callable returning one b'...\\n' line,
    or b'' at EOF).

    A line ending in ':' starts a block which runs until the next blank line; any
    other non-blank line is a bare response. Blank lines between frames are skipped.
    Raises EOFError when the stream ends, including in the middle of a block.
    """
    line = _next_line(readline)
    while not line:
        line = _next_line(readline)
    if not codec.is_header(line):
        return Response(line)
    body: List[str] = []
    while True:
        nxt = _next_line(readline)
        if not nxt:
            return Block(codec.header_name(line), body)
        body.append(nxt)


class FrameReader(threading.Thread):
    """
    Background loop: read frames from the connection, route blocks, log responses.

    A read error triggers one reconnect on the connection (skipped when another thread
    already replaced the socket), then reading resumes on the new socket. Set `stop`
    and shut the socket down to end the loop.
    """

    def __init__(self, connection: "VideohubConnection", router: BlockRouter,
                 stop: Optional[threading.Event] = None, retry_interval: float = 0.5):
        super().__init__(name=f"videohub-reader-{connection.host}", daemon=True)
        self.connection = connection
        self.router = router
        self.stop = stop or threading.Event()
        self.retry_interval = retry_interval

    def run(self) -> None:
        while not self.stop.is_set():
            epoch, rfile = self.connection.reader()
            if rfile is None:
                if not self._recover(epoch):
                    break
                continue
            try:
                frame = read_frame(rfile.readline)
            except (OSError, EOFError, ValueError) as e:
                if self.stop.is_set():
                    break
                log.warning("Error reading from Videohub: %s", e)
                if not self._recover(epoch):
                    break
                continue
            self.handle(frame)
        log.debug("Reader stopped")

    def handle(self, frame: Frame) -> None:
        if isinstance(frame, Response):
            log.info("Received response: [%s]", codec.escape_control(frame.text))
            return
        log.info("Received block: [%s]", codec.escape_control(frame.text))
        self.router.dispatch(frame.name, frame.body)

    def _recover(self, epoch: int) -> bool:
        """Reconnect after a failed read; False once the connection has been closed."""
        try:
            return self.connection.reconnect(stale_epoch=epoch)
        except ConnectionError as e:
            log.error("%s", e)
            self.stop.wait(self.retry_interval)
            return True
