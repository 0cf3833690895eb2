"""P25 network endpoints used by the gateway and the reflector."""

from __future__ import annotations

from p25link import log
from p25link.log import LogLevel
from p25link.udpsocket import UDPSocket
from p25link.utils import dump

POLL = 0xF0
UNLINK = 0xF1

_BUFFER_LENGTH = 200
_CALLSIGN_LENGTH = 10


class _Endpoint:
    """A UDP socket that can dump what it sends and receives."""

    def __init__(self, port: int, debug: bool) -> None:
        self._socket = UDPSocket(port)
        self._debug = debug

    def open(self) -> None:
        log.info("Opening P25 network connection")
        self._socket.open()

    def send(self, title: str, data: bytes, address: str, port: int) -> None:
        if port <= 0:
            raise ValueError("port must be positive")
        if self._debug:
            dump(title, data, LogLevel.DEBUG)
        self._socket.write(data, address, port)

    def send_data(self, data: bytes, address: str, port: int) -> None:
        if not data:
            raise ValueError("data must not be empty")
        self.send("P25 Network Data Sent", bytes(data), address, port)

    def receive(self) -> tuple[bytes, str, int] | None:
        try:
            received = self._socket.read(_BUFFER_LENGTH)
        except OSError:
            return None
        if received is None:
            return None

        if self._debug:
            dump("P25 Network Data Received", received[0], LogLevel.DEBUG)
        return received

    def close(self) -> None:
        self._socket.close()
        log.info("Closing P25 network connection")


class GatewayNetwork:
    """A gateway endpoint that can also poll and unlink from reflectors."""

    def __init__(self, port: int, callsign: str, debug: bool = False) -> None:
        self._endpoint = _Endpoint(port, debug)
        padded = callsign[:_CALLSIGN_LENGTH].ljust(_CALLSIGN_LENGTH)
        self._callsign = padded.encode("latin-1", errors="replace")

    def __enter__(self) -> GatewayNetwork:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Open the UDP socket; raises OSError on failure."""
        self._endpoint.open()

    def write_data(self, data: bytes, address: str, port: int) -> None:
        """Send a P25 frame to the given address and port."""
        self._endpoint.send_data(data, address, port)

    def read_data(self) -> tuple[bytes, str, int] | None:
        """Return (data, address, port) for a waiting frame, or None."""
        return self._endpoint.receive()

    def write_poll(self, address: str, port: int) -> None:
        """Send a poll carrying the callsign."""
        frame = bytes([POLL]) + self._callsign
        self._endpoint.send("P25 Network Poll Sent", frame, address, port)

    def write_unlink(self, address: str, port: int) -> None:
        """Send an unlink carrying the callsign."""
        frame = bytes([UNLINK]) + self._callsign
        self._endpoint.send("P25 Network Unlink Sent", frame, address, port)

    def close(self) -> None:
        """Close the UDP socket."""
        self._endpoint.close()


class ReflectorNetwork:
    """The reflector's endpoint."""

    def __init__(self, port: int, debug: bool = False) -> None:
        self._endpoint = _Endpoint(port, debug)

    def __enter__(self) -> ReflectorNetwork:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Open the UDP socket; raises OSError on failure."""
        self._endpoint.open()

    def write_data(self, data: bytes, address: str, port: int) -> None:
        """Send a P25 frame to the given address and port."""
        self._endpoint.send_data(data, address, port)

    def read_data(self) -> tuple[bytes, str, int] | None:
        """Return (data, address, port) for a waiting frame, or None."""
        return self._endpoint.receive()

    def close(self) -> None:
        """Close the UDP socket."""
        self._endpoint.close()