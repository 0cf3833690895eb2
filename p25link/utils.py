"""Hex dumps and bit/byte conversion helpers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from p25link.log import LogLevel, log


def _printable(c: int) -> bool:
    return 0x20 <= c <= 0x7E


def hex_dump_lines(data: bytes) -> list[str]:
    """Format data as offset, hex and text lines of sixteen bytes each."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = data[offset:offset + 16]
        hex_part = "".join(f"{b:02X} " for b in chunk).ljust(48)
        text = "".join(chr(b) if _printable(b) else "." for b in chunk)
        lines.append(f"{offset:04X}:  {hex_part}   *{text}*")
    return lines


def dump(title: str, data: bytes, level: int = LogLevel.MESSAGE) -> None:
    """Log a title followed by a hex dump of the data."""
    log(level, title)
    for line in hex_dump_lines(bytes(data)):
        log(level, line)


def dump_bits(title: str, bits: Iterable[bool], level: int = LogLevel.MESSAGE) -> None:
    """Pack bits big-endian into bytes and log a hex dump of them."""
    bit_list = [bool(b) for b in bits]
    packed = bytes(
        bits_to_byte_be((bit_list[n:n + 8] + [False] * 8)[:8])
        for n in range(0, len(bit_list), 8)
    )
    dump(title, packed, level)


def byte_to_bits_be(byte: int) -> list[bool]:
    """The eight bits of a byte, most significant first."""
    return [bool(byte & (0x80 >> i)) for i in range(8)]


def byte_to_bits_le(byte: int) -> list[bool]:
    """The eight bits of a byte, least significant first."""
    return [bool(byte & (0x01 << i)) for i in range(8)]


def _check_bits(bits: Sequence[bool]) -> Sequence[bool]:
    if len(bits) != 8:
        raise ValueError("exactly eight bits are required")
    return bits


def bits_to_byte_be(bits: Sequence[bool]) -> int:
    """Pack eight bits, most significant first, into a byte."""
    return sum(0x80 >> i for i, bit in enumerate(_check_bits(bits)) if bit)


def bits_to_byte_le(bits: Sequence[bool]) -> int:
    """Pack eight bits, least significant first, into a byte."""
    return sum(0x01 << i for i, bit in enumerate(_check_bits(bits)) if bit)