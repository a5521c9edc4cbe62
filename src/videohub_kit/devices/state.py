from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set, Tuple
import threading

@dataclass(frozen=True)
class DeviceIdentity:
    protocol_version: Optional[str] = None  # e.g. '2.7'
    model: Optional[str] = None             # e.g. 'Blackmagic Smart Videohub 20 x 20'
    unique_id: Optional[str] = None         # e.g. '7C2E0DA4BFC0'

@dataclass(frozen=True)
class Topology:
    inputs: int = 0
    outputs: int = 0

@dataclass(frozen=True)
class DeviceSnapshot:
    """Immutable copy of the device mirror; routing entries are None while unknown."""
    identity: DeviceIdentity
    topology: Topology
    input_labels: Tuple[str, ...]
    output_labels: Tuple[str, ...]
    routing: Tuple[Optional[int], ...]

    def as_dict(self) -> dict:
        return {
            "protocol_version": self.identity.protocol_version,
            "model": self.identity.model,
            "unique_id": self.identity.unique_id,
            "inputs": self.topology.inputs,
            "outputs": self.topology.outputs,
            "input_labels": list(self.input_labels),
            "output_labels": list(self.output_labels),
            "routing": list(self.routing),
        }


class DeviceState:
    """
    Local mirror of the Videohub: identity, topology, label tables and routing matrix.

    Mutators are meant to be called by the block router inside `transaction()`, which
    holds the state lock for one whole block. Readers use `snapshot()`.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.RLock())
        self._protocol_version: Optional[str] = None
        self._model: Optional[str] = None
        self._unique_id: Optional[str] = None
        self._input_labels: List[str] = []
        self._output_labels: List[str] = []
        self._routing: List[Optional[int]] = []
        self._applied: Set[str] = set()

    # ---------- locking ----------
    @contextmanager
    def transaction(self) -> Iterator["DeviceState"]:
        with self._cond:
            yield self

    def mark_applied(self, block: str) -> None:
        with self._cond:
            self._applied.add(block)
            self._cond.notify_all()

    def wait_for_block(self, block: str, timeout: Optional[float] = None) -> bool:
        """Block until `block` has been applied at least once; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: block in self._applied, timeout)

    # ---------- identity ----------
    def set_protocol_version(self, version: str) -> None:
        with self._cond:
            self._protocol_version = version

    def set_model(self, model: str) -> None:
        with self._cond:
            self._model = model

    def set_unique_id(self, unique_id: str) -> None:
        with self._cond:
            self._unique_id = unique_id

    # ---------- topology ----------
    def set_input_count(self, n: int) -> None:
        """(Re)size the input label table; every label is cleared."""
        with self._cond:
            self._input_labels = [""] * n

    def set_output_count(self, m: int) -> None:
        """(Re)size output labels and routing; every route goes back to unknown."""
        with self._cond:
            self._output_labels = [""] * m
            self._routing = [None] * m

    # ---------- sparse updates ----------
    def set_input_label(self, index: int, text: str) -> bool:
        with self._cond:
            if not 0 <= index < len(self._input_labels):
                return False
            self._input_labels[index] = text
            return True

    def set_output_label(self, index: int, text: str) -> bool:
        with self._cond:
            if not 0 <= index < len(self._output_labels):
                return False
            self._output_labels[index] = text
            return True

    def set_route(self, destination: int, source: int) -> bool:
        with self._cond:
            if not 0 <= destination < len(self._routing):
                return False
            if not 0 <= source < len(self._input_labels):
                return False
            self._routing[destination] = source
            return True

    # ---------- readers ----------
    def snapshot(self) -> DeviceSnapshot:
        with self._cond:
            return DeviceSnapshot(
                identity=DeviceIdentity(self._protocol_version, self._model, self._unique_id),
                topology=Topology(len(self._input_labels), len(self._routing)),
                input_labels=tuple(self._input_labels),
                output_labels=tuple(self._output_labels),
                routing=tuple(self._routing),
            )
