"""Debug dumps of byte buffers, sixteen values to a line."""

from __future__ import annotations

import sys
from typing import Callable, Iterable

_RULE = "==========="
_PER_LINE = 16


def _layout(values: Iterable[int], render: Callable[[int], str]) -> str:
    pieces = []
    for count, value in enumerate(values, 1):
        pieces.append(render(value) + " ")
        if count % _PER_LINE == 0:
            pieces.append("\n")
    return "".join(pieces)


def format_hex(data: bytes) -> str:
    """Each byte as two upper-case hex digits and a space, a newline after every 16."""
    return _layout(data, lambda b: f"{b:02X}")


def format_decimal(data: bytes) -> str:
    """Each byte as a decimal number and a space, a newline after every 16."""
    return _layout(data, str)


def print_hex(data: bytes) -> None:
    """Print the length, the hex dump and a closing rule."""
    sys.stdout.write(f"{_RULE}{len(data)}\n{format_hex(data)}{_RULE}\n")


def print_hex_titled(title: str, data: bytes) -> None:
    """Print a title with the length, the hex dump and a closing rule."""
    sys.stdout.write(f"{_RULE}{title}:{len(data)}\n{format_hex(data)}{_RULE}\n")


def print_decimal(data: bytes) -> None:
    """Print the length, the decimal dump and a closing rule."""
    sys.stdout.write(f"{_RULE}{len(data)}\n{format_decimal(data)}{_RULE}\n")


def print_array(data: bytes, length: int) -> None:
    """Print the hex dump of at most the first ``length`` bytes, without rules."""
    sys.stdout.write(format_hex(data[:length]))