"""DMR id to callsign lookup table, optionally reloaded in the background."""

from __future__ import annotations

import re
import threading

from p25link import log
from p25link.timer import Timer

ALL_ID = 0xFFFFFF

_TOKEN_SPLIT = re.compile(r"[ \t\r\n]+")
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return int(match.group(1)) & 0xFFFFFFFF


class DMRLookup:
    """Maps DMR ids to callsigns read from a whitespace separated file.

    With a non-zero reload time, in hours, the file is read again in a
    background thread once that many hours have passed.
    """

    def __init__(self, filename: str, reload_time: int = 0) -> None:
        self._filename = filename
        self._reload_time = reload_time
        self._table: dict[int, str] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def read(self) -> int:
        """Load the table and start the reload thread if one is wanted.

        Returns the number of ids loaded.
        """
        count = self.load()
        if self._reload_time > 0 and self._thread is None:
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._reload_loop, name="dmr-lookup-reload", daemon=True
            )
            self._thread.start()
        return count

    def _reload_loop(self) -> None:
        log.info("Started the DMR Id lookup reload thread")

        timer = Timer(1, 3600 * self._reload_time)
        timer.start()

        while not self._stop_event.wait(1.0):
            timer.clock()
            if timer.has_expired():
                self.load()
                timer.start()

        log.info("Stopped the DMR Id lookup reload thread")

    def stop(self) -> None:
        """Stop the reload thread, if running, and wait for it to finish."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join()
        self._thread = None

    def find(self, id_: int) -> str:
        """The callsign for an id, "ALL" for the all-call id, else the id as text."""
        if id_ == ALL_ID:
            return "ALL"
        with self._lock:
            callsign = self._table.get(id_)
        return callsign if callsign is not None else str(id_)

    def load(self) -> int:
        """Read the lookup file, replacing the table; returns the number of ids.

        A file that cannot be opened leaves the table as it was and gives 0.
        """
        try:
            with open(self._filename, encoding="utf-8", errors="replace") as handle:
                lines = handle.readlines()
        except OSError:
            log.warning(f"Cannot open the Id lookup file - {self._filename}")
            return 0

        table: dict[int, str] = {}
        for line in lines:
            if line.startswith("#"):
                continue
            tokens = [token for token in _TOKEN_SPLIT.split(line) if token]
            if len(tokens) < 2:
                continue
            table[_atoi(tokens[0])] = tokens[1].upper()

        with self._lock:
            self._table = table

        if table:
            log.info(f"Loaded {len(table)} Ids to the callsign lookup table")
        return len(table)