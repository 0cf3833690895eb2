"""The P25 reflector: relays each transmission to every linked repeater."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass, field

from p25link import log
from p25link.conf import load_reflector_config
from p25link.dmrlookup import DMRLookup
from p25link.gateway import _daemonise, _detach_stdio
from p25link.log import LogLevel
from p25link.network import POLL, UNLINK, ReflectorNetwork
from p25link.stopwatch import StopWatch
from p25link.timer import Timer
from p25link.utils import dump

VERSION = "20161101"
DEFAULT_INI_FILE = "P25Reflector.ini" if os.name == "nt" else "/etc/P25Reflector.ini"

_LINK_CONTROL = 0x64
_DESTINATION = 0x65
_SOURCE = 0x66
_END_OF_TRANSMISSION = 0x80
_CALLSIGN_LENGTH = 10


def _frame_id(frame: bytes) -> int:
    return int.from_bytes(bytes(frame[1:4]).ljust(3, b"\x00"), "big")


def _repeater_timer() -> Timer:
    return Timer(1000, 120)


@dataclass
class Repeater:
    """A linked repeater; it is dropped once its timer runs out without a poll."""

    address: str
    port: int
    callsign: str = ""
    timer: Timer = field(default_factory=_repeater_timer)


class ReflectorServer:
    """Runs the reflector from the settings in an .ini file."""

    def __init__(self, file: str) -> None:
        self._file = file
        self.repeaters: list[Repeater] = []
        self._current: Repeater | None = None
        self._displayed = False
        self._seen64 = False
        self._seen65 = False
        self._lcf = 0
        self._src_id = 0
        self._dst_id = 0
        self._watchdog = Timer(1000, 0, 1500)
        self._dump_timer = Timer(1000, 120)
        self._dump_timer.start()

    def find_repeater(self, address: str, port: int) -> Repeater | None:
        """The linked repeater at the given address and port, or None."""
        return next(
            (rpt for rpt in self.repeaters if rpt.address == address and rpt.port == port),
            None,
        )

    def dump_repeaters(self) -> None:
        """Log the linked repeaters with their timers."""
        if not self.repeaters:
            log.message("No repeaters linked")
            return

        log.message("Currently linked repeaters:")
        for rpt in self.repeaters:
            log.message(
                f"    {rpt.callsign} ({rpt.address}:{rpt.port}) "
                f"{rpt.timer.elapsed()}/{rpt.timer.timeout()}"
            )

    @staticmethod
    def _send(network, frame: bytes, address: str, port: int) -> None:
        try:
            network.write_data(frame, address, port)
        except OSError:
            pass

    def _receive(self, network, lookup: DMRLookup, frame: bytes, address: str, port: int) -> None:
        """Handle one frame received from the network."""
        rpt = self.find_repeater(address, port)
        kind = frame[0]

        if kind == POLL:
            if rpt is None:
                callsign = bytes(frame[1:1 + _CALLSIGN_LENGTH]).decode("latin-1")
                rpt = Repeater(address, port, callsign)
                rpt.timer.start()
                self.repeaters.append(rpt)
                log.message(f"Adding {rpt.callsign} ({address}:{port})")
            else:
                rpt.timer.start()
            # Return the poll
            self._send(network, frame, address, port)
        elif kind == UNLINK and rpt is not None:
            log.message(f"Removing {rpt.callsign} ({address}:{port}) unlinked")
            self.repeaters.remove(rpt)
        elif rpt is not None:
            self._relay(network, lookup, rpt, frame, address, port)
        else:
            log.message(f"Data received from an unknown source - {address}:{port}")
            dump("Data", frame, LogLevel.MESSAGE)

    def _relay(
        self, network, lookup: DMRLookup, rpt: Repeater, frame: bytes, address: str, port: int
    ) -> None:
        rpt.timer.start()

        if self._current is None:
            self._current = rpt
            self._displayed = False
            self._seen64 = False
            self._seen65 = False
            log.message(f"Transmission started from {rpt.callsign} ({address}:{port})")

        if self._current is not rpt:
            return

        self._watchdog.start()
        kind = frame[0]

        if kind == _LINK_CONTROL and not self._seen64:
            self._lcf = frame[1] if len(frame) > 1 else 0
            self._seen64 = True

        if kind == _DESTINATION and not self._seen65:
            self._dst_id = _frame_id(frame)
            self._seen65 = True

        if kind == _SOURCE and self._seen64 and self._seen65 and not self._displayed:
            self._src_id = _frame_id(frame)
            self._displayed = True
            callsign = lookup.find(self._src_id)
            prefix = "TG " if self._lcf == 0 else ""
            log.message(
                f"Transmission from {callsign} at {rpt.callsign} to {prefix}{self._dst_id}"
            )

        for other in list(self.repeaters):
            if other.address != address or other.port != port:
                self._send(network, frame, other.address, other.port)

        if kind == _END_OF_TRANSMISSION:
            log.message("Received end of transmission")
            self._watchdog.stop()
            self._current = None

    def _clock(self, ms: int) -> None:
        """Advance all timers by the given milliseconds and act on expiry."""
        for rpt in self.repeaters:
            rpt.timer.clock(ms)

        # Remove at most one repeater that hasn't reported for a while
        expired = next((rpt for rpt in self.repeaters if rpt.timer.has_expired()), None)
        if expired is not None:
            log.message(
                f"Removing {expired.callsign} ({expired.address}:{expired.port}) disappeared"
            )
            self.repeaters.remove(expired)

        self._watchdog.clock(ms)
        if self._watchdog.is_running() and self._watchdog.has_expired():
            log.message("Network watchdog has expired")
            self._watchdog.stop()
            self._current = None

        self._dump_timer.clock(ms)
        if self._dump_timer.has_expired():
            self.dump_repeaters()
            self._dump_timer.start()

    def run(self) -> None:
        """Run until interrupted; returns early if setup fails."""
        try:
            conf = load_reflector_config(self._file)
        except OSError:
            print(f"Couldn't open the .ini file - {self._file}", file=sys.stderr)
            print("P25Reflector: cannot read the .ini file", file=sys.stderr)
            return

        daemon = conf.daemon and os.name == "posix"
        if daemon and not _daemonise():
            return

        try:
            log.initialise(
                conf.log_file_path,
                conf.log_file_root,
                conf.log_file_level,
                conf.log_display_level,
            )
        except OSError:
            print("P25Reflector: unable to open the log file", file=sys.stderr)
            return

        if daemon:
            _detach_stdio()

        network = ReflectorNetwork(conf.network_port, conf.network_debug)
        try:
            network.open()
        except OSError:
            log.finalise()
            return

        lookup = DMRLookup(conf.lookup_name, conf.lookup_time)
        lookup.read()

        stopwatch = StopWatch()
        stopwatch.start()

        log.message(f"Starting P25Reflector-{VERSION}")

        try:
            while True:
                received = network.read_data()
                if received is not None:
                    self._receive(network, lookup, *received)

                ms = stopwatch.elapsed()
                stopwatch.start()
                self._clock(ms)

                if ms < 5:
                    time.sleep(0.005)
        finally:
            network.close()
            lookup.stop()
            log.finalise()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = sys.argv[1:] if argv is None else list(argv)
    ini_file = DEFAULT_INI_FILE
    for arg in args:
        if arg in ("-v", "--version"):
            print(f"P25Reflector version {VERSION}")
            return 0
        if arg.startswith("-"):
            print("Usage: P25Reflector [-v|--version] [filename]", file=sys.stderr)
            return 1
        ini_file = arg

    ReflectorServer(ini_file).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())