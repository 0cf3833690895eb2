"""The P25 gateway: links a repeater to a reflector chosen over the air."""

from __future__ import annotations

import os
import sys
import time
from collections.abc import Callable

from p25link import log
from p25link.conf import load_gateway_config
from p25link.dmrlookup import DMRLookup
from p25link.network import GatewayNetwork
from p25link.reflectors import Reflectors
from p25link.stopwatch import StopWatch
from p25link.timer import Timer
from p25link.udpsocket import lookup
from p25link.voice import Voice

VERSION = "20190304"
DEFAULT_INI_FILE = "P25Gateway.ini" if os.name == "nt" else "/etc/P25Gateway.ini"
P25_VOICE_ID = 10999
NO_REFLECTOR = 9999

_LINK_CONTROL = 0x64
_DESTINATION = 0x65
_SOURCE = 0x66
_END_OF_TRANSMISSION = 0x80
_CONTROL_FRAMES = (0xF0, 0xF1)
_REPEATS = 3


def _rewrite(frame: bytes, current_id: int) -> bytes:
    """Mark link control as talk group and set the destination to the linked one."""
    kind = frame[0]
    if kind == _LINK_CONTROL:
        patch = b"\x00"
    elif kind == _DESTINATION:
        patch = (current_id & 0xFFFFFF).to_bytes(3, "big")
    else:
        return bytes(frame)
    out = bytearray(frame)
    end = min(len(out), 1 + len(patch))
    out[1:end] = patch[: end - 1]
    return bytes(out)


def _frame_id(frame: bytes) -> int:
    return int.from_bytes(bytes(frame[1:4]).ljust(3, b"\x00"), "big")


class _Session:
    """The link state between the repeater and the reflectors."""

    def __init__(
        self,
        local,
        remote,
        reflectors: Reflectors,
        dmr_lookup: DMRLookup,
        voice: Voice | None,
        rpt_address: str | None,
        rpt_port: int,
        inactivity_minutes: int,
        startup_id: int,
    ) -> None:
        self.local = local
        self.remote = remote
        self.reflectors = reflectors
        self.dmr_lookup = dmr_lookup
        self.voice = voice
        self.rpt_address = rpt_address
        self.rpt_port = rpt_port
        self.inactivity_timer = Timer(1000, inactivity_minutes * 60)
        self.lost_timer = Timer(1000, 120)
        self.poll_timer = Timer(1000, 5)
        self.startup_id = startup_id
        self.current_id = NO_REFLECTOR
        self.current_address: str | None = None
        self.current_port = 0
        self.src_id = 0
        self.dst_id = 0

    def _start_timers(self) -> None:
        self.inactivity_timer.start()
        self.poll_timer.start()
        self.lost_timer.start()

    def _stop_timers(self) -> None:
        self.inactivity_timer.stop()
        self.poll_timer.stop()
        self.lost_timer.stop()

    def _control(self, send: Callable[[str, int], None], times: int = _REPEATS) -> None:
        if self.current_address is None:
            return
        for _ in range(times):
            try:
                send(self.current_address, self.current_port)
            except OSError:
                pass

    def _poll(self, times: int = _REPEATS) -> None:
        self._control(self.remote.write_poll, times)

    def _unlink(self) -> None:
        self._control(self.remote.write_unlink)

    def _to_repeater(self, frame: bytes) -> None:
        if self.rpt_address is None:
            return
        try:
            self.local.write_data(frame, self.rpt_address, self.rpt_port)
        except OSError:
            pass

    def _to_reflector(self, frame: bytes) -> None:
        if self.current_address is None:
            return
        try:
            self.remote.write_data(frame, self.current_address, self.current_port)
        except OSError:
            pass

    def _link(self, reflector) -> None:
        self.current_id = reflector.id
        self.current_address = reflector.address
        self.current_port = reflector.port

    def link_at_startup(self) -> None:
        """Link to the configured startup reflector, if there is one."""
        if self.startup_id == NO_REFLECTOR:
            return
        reflector = self.reflectors.find(self.startup_id)
        if reflector is None:
            return
        self._link(reflector)
        self._start_timers()
        self._poll()
        log.message(f"Linked at startup to reflector {self.current_id}")

    def from_remote(self, frame: bytes, address: str, port: int) -> None:
        """Pass a frame from the linked reflector on to the repeater."""
        if self.current_id == NO_REFLECTOR:
            return
        if address != self.current_address or port != self.current_port:
            return
        if frame[0] not in _CONTROL_FRAMES:
            self._to_repeater(_rewrite(frame, self.current_id))
        # Any network activity is proof that the reflector is alive
        self.lost_timer.start()

    def from_local(self, frame: bytes) -> None:
        """Handle a frame from the repeater, linking or unlinking as it asks."""
        kind = frame[0]
        if kind == _DESTINATION:
            self.dst_id = _frame_id(frame)
        elif kind == _SOURCE:
            self.src_id = _frame_id(frame)
            if self.dst_id != self.current_id:
                self._change_link()
        elif kind == _END_OF_TRANSMISSION:
            if self.voice is not None:
                self.voice.eof()

        if self.current_id != NO_REFLECTOR:
            self._to_reflector(_rewrite(frame, self.current_id))
            self.inactivity_timer.start()

    def _change_link(self) -> None:
        reflector = None
        if self.dst_id != NO_REFLECTOR:
            reflector = self.reflectors.find(self.dst_id)

        if self.dst_id == NO_REFLECTOR or reflector is not None:
            callsign = self.dmr_lookup.find(self.src_id)
            if self.current_id != NO_REFLECTOR:
                log.message(f"Unlinked from reflector {self.current_id} by {callsign}")
                self._unlink()
                self._stop_timers()

            if self.voice is not None:
                if self.dst_id == NO_REFLECTOR:
                    self.voice.unlinked()
                else:
                    self.voice.linked_to(self.dst_id)

            self.current_id = self.dst_id

        if reflector is not None:
            self._link(reflector)
            callsign = self.dmr_lookup.find(self.src_id)
            log.message(f"Linked to reflector {self.current_id} by {callsign}")
            self._poll()
            self._start_timers()

    def send_voice(self) -> None:
        """Pass any announcement frame that is due on to the repeater."""
        if self.voice is None:
            return
        frame = self.voice.read()
        if frame:
            self._to_repeater(frame)

    def clock(self, ms: int) -> None:
        """Advance the timers by the given milliseconds and act on expiry."""
        self.reflectors.clock(ms)
        if self.voice is not None:
            self.voice.clock(ms)

        self.inactivity_timer.clock(ms)
        if self.inactivity_timer.is_running() and self.inactivity_timer.has_expired():
            self._inactive()

        self.poll_timer.clock(ms)
        if self.poll_timer.is_running() and self.poll_timer.has_expired():
            if self.current_id != NO_REFLECTOR:
                self._poll(1)
            self.poll_timer.start()

        self.lost_timer.clock(ms)
        if self.lost_timer.is_running() and self.lost_timer.has_expired():
            if self.current_id != NO_REFLECTOR:
                log.warning(f"No response from {self.current_id}, unlinking")
                self.current_id = NO_REFLECTOR
            self.inactivity_timer.stop()
            self.lost_timer.stop()

    def _inactive(self) -> None:
        if self.current_id != NO_REFLECTOR and self.startup_id == NO_REFLECTOR:
            log.message(f"Unlinking from {self.current_id} due to inactivity")
            self._unlink()
            if self.voice is not None:
                self.voice.unlinked()
            self.current_id = NO_REFLECTOR
            self._stop_timers()
        elif self.current_id != self.startup_id:
            if self.current_id != NO_REFLECTOR:
                self._unlink()

            reflector = self.reflectors.find(self.startup_id)
            if reflector is not None:
                self._link(reflector)
                self._start_timers()
                log.message(f"Linked to reflector {self.current_id} due to inactivity")
                if self.voice is not None:
                    self.voice.linked_to(self.current_id)
                self._poll()
            else:
                self.startup_id = NO_REFLECTOR
                self._stop_timers()


def _daemonise() -> bool:
    """Prepare to run as a service: new session, root directory, mmdvm user.

    Putting the process in the background is left to the service manager.
    """
    try:
        os.setsid()
    except OSError:
        # Already a session or process group leader under the service manager.
        pass

    try:
        os.chdir("/")
    except OSError:
        print("Couldn't cd /, exiting", file=sys.stderr)
        return False

    if os.getuid() == 0:
        import pwd

        try:
            user = pwd.getpwnam("mmdvm")
        except KeyError:
            print("Could not get the mmdvm user, exiting", file=sys.stderr)
            return False

        try:
            os.setgid(user.pw_gid)
        except OSError:
            print("Could not set mmdvm GID, exiting", file=sys.stderr)
            return False

        try:
            os.setuid(user.pw_uid)
        except OSError:
            print("Could not set mmdvm UID, exiting", file=sys.stderr)
            return False

        try:
            os.setuid(0)
        except OSError:
            pass
        else:
            print("It's possible to regain root - something is wrong!, exiting", file=sys.stderr)
            return False

    return True


def _detach_stdio() -> None:
    sys.stdout.flush()
    sys.stderr.flush()
    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    os.close(devnull)


class Gateway:
    """Runs the gateway from the settings in an .ini file."""

    def __init__(self, file: str) -> None:
        self._file = file

    def run(self) -> None:
        """Run until interrupted; returns early if setup fails."""
        try:
            conf = load_gateway_config(self._file)
        except OSError:
            print(f"Couldn't open the .ini file - {self._file}", file=sys.stderr)
            print("P25Gateway: cannot read the .ini file", file=sys.stderr)
            return

        daemon = conf.daemon and os.name == "posix"
        if daemon and not _daemonise():
            return

        try:
            log.initialise(conf.log_file_path, conf.log_file_root, 1, 1)
        except OSError:
            print("P25Gateway: unable to open the log file", file=sys.stderr)
            return

        if daemon:
            _detach_stdio()

        rpt_address = lookup(conf.rpt_address)

        local = GatewayNetwork(conf.my_port, conf.callsign, False)
        try:
            local.open()
        except OSError:
            log.finalise()
            return

        remote = GatewayNetwork(conf.network_port, conf.callsign, conf.network_debug)
        try:
            remote.open()
        except OSError:
            local.close()
            log.finalise()
            return

        reflectors = Reflectors(
            conf.network_hosts1, conf.network_hosts2, conf.network_reload_time
        )
        if conf.network_parrot_port > 0:
            reflectors.set_parrot(conf.network_parrot_address, conf.network_parrot_port)
        reflectors.load()

        dmr_lookup = DMRLookup(conf.lookup_name, conf.lookup_time)
        dmr_lookup.read()

        stopwatch = StopWatch()
        stopwatch.start()

        voice: Voice | None = None
        if conf.voice_enabled:
            try:
                voice = Voice(conf.voice_directory, conf.voice_language, P25_VOICE_ID)
                voice.open()
            except (OSError, ValueError):
                voice = None

        log.message(f"Starting P25Gateway-{VERSION}")

        session = _Session(
            local,
            remote,
            reflectors,
            dmr_lookup,
            voice,
            rpt_address,
            conf.rpt_port,
            conf.network_inactivity_timeout,
            conf.network_startup,
        )
        session.link_at_startup()

        try:
            while True:
                received = remote.read_data()
                if received is not None:
                    session.from_remote(*received)

                received = local.read_data()
                if received is not None:
                    session.from_local(received[0])

                session.send_voice()

                ms = stopwatch.elapsed()
                stopwatch.start()
                session.clock(ms)

                if ms < 5:
                    time.sleep(0.005)
        finally:
            local.close()
            remote.close()
            dmr_lookup.stop()
            log.finalise()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = sys.argv[1:] if argv is None else list(argv)
    ini_file = DEFAULT_INI_FILE
    for arg in args:
        if arg in ("-v", "--version"):
            print(f"P25Gateway version {VERSION}")
            return 0
        if arg.startswith("-"):
            print("Usage: P25Gateway [-v|--version] [filename]", file=sys.stderr)
            return 1
        ini_file = arg

    Gateway(ini_file).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())