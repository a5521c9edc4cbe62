from __future__ import annotations
from typing import Iterable, Optional, Tuple

# Block header names (without the trailing ':')
PROTOCOL_PREAMBLE = "PROTOCOL PREAMBLE"
VIDEOHUB_DEVICE = "VIDEOHUB DEVICE"
INPUT_LABELS = "INPUT LABELS"
OUTPUT_LABELS = "OUTPUT LABELS"
VIDEO_OUTPUT_LOCKS = "VIDEO OUTPUT LOCKS"
VIDEO_OUTPUT_ROUTING = "VIDEO OUTPUT ROUTING"
CONFIGURATION = "CONFIGURATION"

HEADER_SUFFIX = ":"
KEY_VALUE_SEP = ": "
TERMINATOR = "\n\n"

_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def escape_control(text: str) -> str:
    """Render control characters visibly so a multi-line payload fits on one log line."""
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return "".join(out)


# ---------- encoding ----------
def encode_block(header: str, lines: Iterable[str]) -> str:
    """
    Build a command block without its terminator:  'HEADER:\\nline\\nline'.
    The connection appends the blank-line terminator on send.
    """
    return "\n".join([header + HEADER_SUFFIX, *lines])


def encode_routes(pairs: Iterable[Tuple[int, int]]) -> str:
    """One VIDEO OUTPUT ROUTING block, entries kept in caller order."""
    return encode_block(VIDEO_OUTPUT_ROUTING, [f"{int(dst)} {int(src)}" for dst, src in pairs])


def encode_label(header: str, index: int, text: str) -> str:
    if "\n" in text or "\r" in text:
        raise ValueError(f"Label text must be a single line: {text!r}")
    return encode_block(header, [f"{int(index)} {text}"])


# ---------- decoding ----------
def is_header(line: str) -> bool:
    return line.endswith(HEADER_SUFFIX)


def header_name(line: str) -> str:
    return line[: -len(HEADER_SUFFIX)] if is_header(line) else line


def parse_key_value(line: str) -> Optional[Tuple[str, str]]:
    """'Key: Value' -> (key, value); None when the separator is missing."""
    key, sep, value = line.partition(KEY_VALUE_SEP)
    if not sep or not key:
        return None
    return key, value


def parse_count(value: str) -> Optional[int]:
    n = parse_index(value.strip())
    return n if n is not None and n >= 0 else None


def parse_index(token: str) -> Optional[int]:
    """Plain decimal integer: ASCII digits with an optional leading '-', nothing else."""
    digits = token[1:] if token.startswith("-") else token
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    return int(token, 10)


def parse_label(line: str) -> Optional[Tuple[int, str]]:
    """'<index> <label text>' split on the first space only."""
    parts = line.split(" ", 1)
    if len(parts) != 2:
        return None
    index = parse_index(parts[0])
    if index is None:
        return None
    return index, parts[1]


def parse_route(line: str) -> Optional[Tuple[int, int]]:
    """'<destination> <source>' -> (destination, source)."""
    parts = line.split(" ")
    if len(parts) != 2:
        return None
    destination, source = parse_index(parts[0]), parse_index(parts[1])
    if destination is None or source is None:
        return None
    return destination, source
