"""Configuration files for the gateway and the reflector."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

_KEY_DELIMITERS = " \t=\r\n"
_VALUE_DELIMITERS = "\r\n"


@dataclass
class GatewayConfig:
    """Settings read from the gateway's .ini file."""

    callsign: str = ""
    rpt_address: str = ""
    rpt_port: int = 0
    my_port: int = 0
    daemon: bool = False
    lookup_name: str = ""
    lookup_time: int = 0
    voice_enabled: bool = True
    voice_language: str = "en_GB"
    voice_directory: str = ""
    log_file_path: str = ""
    log_file_root: str = ""
    network_port: int = 0
    network_hosts1: str = ""
    network_hosts2: str = ""
    network_reload_time: int = 0
    network_parrot_address: str = "127.0.0.1"
    network_parrot_port: int = 0
    network_startup: int = 9999
    network_inactivity_timeout: int = 0
    network_debug: bool = False


@dataclass
class ReflectorConfig:
    """Settings read from the reflector's .ini file."""

    daemon: bool = False
    lookup_name: str = ""
    lookup_time: int = 0
    log_display_level: int = 0
    log_file_level: int = 0
    log_file_path: str = ""
    log_file_root: str = ""
    network_port: int = 0
    network_debug: bool = False


def _atoi(text: str) -> int:
    """Leading integer of the text, as C's atoi reads it; zero if there is none."""
    text = text.lstrip(" \t\n\v\f\r")
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for ch in text:
        if not ch.isdigit() or not ch.isascii():
            break
        digits += ch
    return sign * int(digits) if digits else 0


def _unsigned(text: str) -> int:
    return _atoi(text) & 0xFFFFFFFF


def _flag(text: str) -> bool:
    return _atoi(text) == 1


def _upper(text: str) -> str:
    return text.upper()


def _split_line(line: str) -> tuple[str, str] | None:
    """Split a line into key and value the way the .ini reader always has.

    The key ends at the first space, tab or '='; the value is the rest of the
    line after that single character, up to the end of the line.
    """
    start = 0
    while start < len(line) and line[start] in _KEY_DELIMITERS:
        start += 1
    if start == len(line):
        return None

    end = start
    while end < len(line) and line[end] not in _KEY_DELIMITERS:
        end += 1
    key = line[start:end]

    rest = line[end + 1:].lstrip(_VALUE_DELIMITERS)
    cut = len(rest)
    for delimiter in _VALUE_DELIMITERS:
        position = rest.find(delimiter)
        if position != -1:
            cut = min(cut, position)
    return key, rest[:cut]


_Converter = Callable[[str], Any]
_Schema = dict[str, dict[str, tuple[str, _Converter]]]


def _parse(lines: Iterable[str], schema: _Schema) -> dict[str, Any]:
    values: dict[str, Any] = {}
    section: dict[str, tuple[str, _Converter]] | None = None

    for line in lines:
        if line.startswith("#"):
            continue

        if line.startswith("["):
            section = next(
                (keys for header, keys in schema.items() if line.startswith(header)),
                None,
            )
            continue

        parts = _split_line(line)
        if parts is None or section is None:
            continue

        key, value = parts
        if key in section:
            field, convert = section[key]
            values[field] = convert(value)

    return values


_GATEWAY_SCHEMA: _Schema = {
    "[General]": {
        "Callsign": ("callsign", _upper),
        "RptAddress": ("rpt_address", str),
        "RptPort": ("rpt_port", _unsigned),
        "LocalPort": ("my_port", _unsigned),
        "Daemon": ("daemon", _flag),
    },
    "[Id Lookup]": {
        "Name": ("lookup_name", str),
        "Time": ("lookup_time", _unsigned),
    },
    "[Voice]": {
        "Enabled": ("voice_enabled", _flag),
        "Language": ("voice_language", str),
        "Directory": ("voice_directory", str),
    },
    "[Log]": {
        "FilePath": ("log_file_path", str),
        "FileRoot": ("log_file_root", str),
    },
    "[Network]": {
        "Port": ("network_port", _unsigned),
        "HostsFile1": ("network_hosts1", str),
        "HostsFile2": ("network_hosts2", str),
        "ReloadTime": ("network_reload_time", _unsigned),
        "ParrotAddress": ("network_parrot_address", str),
        "ParrotPort": ("network_parrot_port", _unsigned),
        "Startup": ("network_startup", _unsigned),
        "InactivityTimeout": ("network_inactivity_timeout", _unsigned),
        "Debug": ("network_debug", _flag),
    },
}

_REFLECTOR_SCHEMA: _Schema = {
    "[General]": {
        "Daemon": ("daemon", _flag),
    },
    "[Id Lookup]": {
        "Name": ("lookup_name", str),
        "Time": ("lookup_time", _unsigned),
    },
    "[Log]": {
        "FilePath": ("log_file_path", str),
        "FileRoot": ("log_file_root", str),
        "FileLevel": ("log_file_level", _unsigned),
        "DisplayLevel": ("log_display_level", _unsigned),
    },
    "[Network]": {
        "Port": ("network_port", _unsigned),
        "Debug": ("network_debug", _flag),
    },
}


def _read_lines(path: str) -> list[str]:
    with open(path, encoding="utf-8", errors="replace", newline="") as handle:
        return handle.readlines()


def load_gateway_config(path: str) -> GatewayConfig:
    """Read the gateway configuration; raises OSError if the file cannot be opened."""
    return GatewayConfig(**_parse(_read_lines(path), _GATEWAY_SCHEMA))


def load_reflector_config(path: str) -> ReflectorConfig:
    """Read the reflector configuration; raises OSError if the file cannot be opened."""
    return ReflectorConfig(**_parse(_read_lines(path), _REFLECTOR_SCHEMA))