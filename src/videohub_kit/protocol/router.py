from __future__ import annotations
from typing import Callable, Dict, List
import logging

from ..devices.state import DeviceState
from . import codec

log = logging.getLogger(__name__)

# Recognized but intentionally not mirrored.
INERT_BLOCKS = frozenset({codec.VIDEO_OUTPUT_LOCKS, codec.CONFIGURATION})


class BlockRouter:
    """
    Dispatch decoded blocks to the handler that updates DeviceState.

    Each block is applied inside a single state transaction, so readers never see a
    half-applied block. Malformed or out-of-range lines are dropped one at a time.
    """

    def __init__(self, state: DeviceState):
        self.state = state
        self._handlers: Dict[str, Callable[[List[str]], None]] = {
            codec.PROTOCOL_PREAMBLE: self._protocol_preamble,
            codec.VIDEOHUB_DEVICE: self._videohub_device,
            codec.INPUT_LABELS: self._input_labels,
            codec.OUTPUT_LABELS: self._output_labels,
            codec.VIDEO_OUTPUT_ROUTING: self._output_routing,
        }

    def dispatch(self, name: str, body: List[str]) -> bool:
        """Apply one block; returns False for block types this client does not know."""
        handler = self._handlers.get(name)
        if handler is None:
            if name not in INERT_BLOCKS:
                log.debug("Ignoring unknown block %r", name)
                return False
            with self.state.transaction():
                self.state.mark_applied(name)
            return True
        with self.state.transaction():
            handler(body)
            self.state.mark_applied(name)
        return True

    # ---------- handlers ----------
    def _protocol_preamble(self, body: List[str]) -> None:
        for line in body:
            kv = codec.parse_key_value(line)
            if kv is None:
                self._drop(codec.PROTOCOL_PREAMBLE, line)
                continue
            key, value = kv
            if key == "Version":
                self.state.set_protocol_version(value)

    def _videohub_device(self, body: List[str]) -> None:
        for line in body:
            kv = codec.parse_key_value(line)
            if kv is None:
                self._drop(codec.VIDEOHUB_DEVICE, line)
                continue
            key, value = kv
            if key == "Model name":
                self.state.set_model(value)
            elif key == "Unique ID":
                self.state.set_unique_id(value)
            elif key in ("Video inputs", "Video outputs"):
                n = codec.parse_count(value)
                if n is None:
                    self._drop(codec.VIDEOHUB_DEVICE, line)
                elif key == "Video inputs":
                    self.state.set_input_count(n)
                else:
                    self.state.set_output_count(n)

    def _input_labels(self, body: List[str]) -> None:
        for line in body:
            parsed = codec.parse_label(line)
            if parsed is None or not self.state.set_input_label(*parsed):
                self._drop(codec.INPUT_LABELS, line)

    def _output_labels(self, body: List[str]) -> None:
        for line in body:
            parsed = codec.parse_label(line)
            if parsed is None or not self.state.set_output_label(*parsed):
                self._drop(codec.OUTPUT_LABELS, line)

    def _output_routing(self, body: List[str]) -> None:
        for line in body:
            parsed = codec.parse_route(line)
            if parsed is None or not self.state.set_route(*parsed):
                self._drop(codec.VIDEO_OUTPUT_ROUTING, line)

    @staticmethod
    def _drop(block: str, line: str) -> None:
        log.debug("Dropping %s line: [%s]", block, codec.escape_control(line))
