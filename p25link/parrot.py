"""The P25 parrot: records a transmission and plays it back to the sender."""

from __future__ import annotations

import re
import sys
import time

from p25link.network import POLL, UNLINK
from p25link.parrotbuffer import ParrotBuffer
from p25link.stopwatch import StopWatch
from p25link.timer import Timer
from p25link.udpsocket import UDPSocket

VERSION = "20161021"

_BUFFER_LENGTH = 200
_FRAME_TIME = 20
_END_OF_TRANSMISSION = 0x80
_RECORD_SECONDS = 180

_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) & 0xFFFFFFFF if match else 0


class ParrotNetwork:
    """The parrot's UDP endpoint; it answers polls and remembers the last sender."""

    def __init__(self, port: int) -> None:
        self._local_port = port & 0xFFFF
        self._socket = UDPSocket(self._local_port)
        self._address: str | None = None
        self._port = 0

    def __enter__(self) -> ParrotNetwork:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Open the socket; raises OSError on failure."""
        print("Opening P25 network connection", flush=True)
        self._socket.open()
        if self._local_port > 0:
            print(f"Opening UDP port on {self._local_port}", flush=True)

    def write(self, data: bytes) -> None:
        """Send a frame to the last sender; does nothing once playback has ended."""
        if self._port == 0 or self._address is None:
            return
        self._socket.write(data, self._address, self._port)

    def read(self) -> bytes | None:
        """The next voice frame received, or None; polls are echoed back."""
        try:
            received = self._socket.read(_BUFFER_LENGTH)
        except OSError:
            return None
        if received is None:
            return None

        data, self._address, self._port = received
        if data[0] == POLL:
            self.write(data)
            return None
        if data[0] == UNLINK:
            return None
        return data

    def end(self) -> None:
        """Forget the sender so nothing more is sent back."""
        self._port = 0

    def close(self) -> None:
        self._socket.close()
        print("Closing P25 network connection", flush=True)


class _Recorder:
    """Records frames until the transmission ends, then plays them back."""

    def __init__(self, network, buffer: ParrotBuffer) -> None:
        self.network = network
        self.buffer = buffer
        self.watchdog_timer = Timer(1000, 0, 1500)
        self.turnaround_timer = Timer(1000, 2)
        self.playout = StopWatch()
        self.count = 0
        self.playing = False

    def _finish_recording(self) -> None:
        self.turnaround_timer.start()
        self.watchdog_timer.stop()
        self.buffer.end()

    def receive(self, frame: bytes) -> None:
        self.buffer.write(frame)
        self.watchdog_timer.start()
        if frame[0] == _END_OF_TRANSMISSION:
            self._finish_recording()

    def play(self) -> None:
        """Send every frame due since playback began, one per 20 ms."""
        if not (self.turnaround_timer.is_running() and self.turnaround_timer.has_expired()):
            return
        if not self.playing:
            self.playout.start()
            self.playing = True
            self.count = 0
        self._play_due(self.playout.elapsed() // _FRAME_TIME)

    def _play_due(self, wanted: int) -> None:
        while self.count < wanted:
            frame = self.buffer.read()
            if frame is not None:
                try:
                    self.network.write(frame)
                except OSError:
                    pass
                self.count += 1
            else:
                self.buffer.clear()
                self.network.end()
                self.turnaround_timer.stop()
                self.playing = False
                self.count = wanted

    def clock(self, ms: int) -> None:
        self.watchdog_timer.clock(ms)
        self.turnaround_timer.clock(ms)
        if self.watchdog_timer.is_running() and self.watchdog_timer.has_expired():
            self._finish_recording()


class Parrot:
    """Runs the parrot on a UDP port."""

    def __init__(self, port: int) -> None:
        self._port = port

    def run(self) -> None:
        """Run until interrupted; returns at once if the port cannot be opened."""
        buffer = ParrotBuffer(_RECORD_SECONDS)
        network = ParrotNetwork(self._port)
        try:
            network.open()
        except OSError:
            return

        recorder = _Recorder(network, buffer)
        stopwatch = StopWatch()
        stopwatch.start()

        print(f"Starting P25Parrot-{VERSION}", flush=True)

        try:
            while True:
                frame = network.read()
                if frame is not None:
                    recorder.receive(frame)

                recorder.play()

                ms = stopwatch.elapsed()
                stopwatch.start()
                recorder.clock(ms)

                if ms < 5:
                    time.sleep(0.005)
        finally:
            network.close()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: P25Parrot <port>", file=sys.stderr)
        return 1

    port = _atoi(args[0])
    if port == 0:
        print(f"P25Parrot: invalid port number - {args[0]}", file=sys.stderr)
        return 1

    Parrot(port).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())