"""The table of P25 reflectors read from the hosts files."""

from __future__ import annotations

import re
from dataclasses import dataclass

from p25link import log
from p25link.timer import Timer
from p25link.udpsocket import lookup

PARROT_ID = 10

_TOKEN_SPLIT = re.compile(r"[ \t\r\n]+")
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return int(match.group(1)) & 0xFFFFFFFF


@dataclass
class Reflector:
    """A reflector's talk group id and where to reach it."""

    id: int
    address: str | None
    port: int


class Reflectors:
    """Reflectors from a primary and a secondary hosts file.

    Entries in the secondary file never replace an id already known. With a
    non-zero reload time, in minutes, the files are read again by clock().
    """

    def __init__(self, hosts_file1: str, hosts_file2: str, reload_time: int = 0) -> None:
        self._hosts_file1 = hosts_file1
        self._hosts_file2 = hosts_file2
        self._parrot_address = ""
        self._parrot_port = 0
        self._reflectors: list[Reflector] = []
        self._timer = Timer(1000, reload_time * 60)
        if reload_time > 0:
            self._timer.start()

    def set_parrot(self, address: str, port: int) -> None:
        """Add a parrot entry, as talk group 10, on every load."""
        self._parrot_address = address
        self._parrot_port = port

    @staticmethod
    def _entries(filename: str):
        try:
            with open(filename, encoding="utf-8", errors="replace") as handle:
                lines = handle.readlines()
        except OSError:
            return
        for line in lines:
            if line.startswith("#"):
                continue
            tokens = [token for token in _TOKEN_SPLIT.split(line) if token]
            if len(tokens) >= 3:
                yield _atoi(tokens[0]), tokens[1], _atoi(tokens[2])

    def load(self) -> bool:
        """Read the hosts files afresh; returns False if no reflector is known."""
        self._reflectors = []

        for id_, host, port in self._entries(self._hosts_file1):
            address = lookup(host)
            if address is not None:
                self._reflectors.append(Reflector(id_, address, port))

        for id_, host, port in self._entries(self._hosts_file2):
            if self.find(id_) is not None:
                continue
            address = lookup(host)
            if address is not None:
                self._reflectors.append(Reflector(id_, address, port))

        log.info(f"Loaded {len(self._reflectors)} P25 reflectors")

        if self._parrot_port > 0:
            parrot = Reflector(PARROT_ID, lookup(self._parrot_address), self._parrot_port)
            self._reflectors.append(parrot)
            log.info(f"Loaded P25 parrot (TG{parrot.id})")

        return bool(self._reflectors)

    def find(self, id_: int) -> Reflector | None:
        """The reflector with the given id, or None."""
        return next((refl for refl in self._reflectors if refl.id == id_), None)

    def clock(self, ms: int) -> None:
        """Advance the reload timer, reloading the files when it expires."""
        self._timer.clock(ms)
        if self._timer.is_running() and self._timer.has_expired():
            self.load()
            self._timer.start()