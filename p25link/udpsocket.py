"""Non-blocking IPv4 UDP socket and host name lookup."""

from __future__ import annotations

import select
import socket

from p25link import log


def lookup(hostname: str) -> str | None:
    """Resolve a dotted address or host name to a dotted IPv4 address.

    Returns None, after logging an error, when the host cannot be found.
    """
    try:
        return socket.inet_ntoa(socket.inet_aton(hostname))
    except (OSError, ValueError):
        pass

    try:
        return socket.gethostbyname(hostname)
    except (OSError, UnicodeError):
        log.error(f"Cannot find address for host {hostname}")
        return None


class UDPSocket:
    """A UDP socket, bound to a local port when one is given."""

    def __init__(self, port: int = 0, address: str = "") -> None:
        self._port = port
        self._address = address
        self._sock: socket.socket | None = None

    def __enter__(self) -> UDPSocket:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Create the socket and bind it if a port was given; raises OSError."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            log.error(f"Cannot create the UDP socket, err: {exc.errno}")
            raise

        if self._port > 0:
            bind_address = ""
            if self._address:
                try:
                    bind_address = socket.inet_ntoa(socket.inet_aton(self._address))
                except OSError:
                    sock.close()
                    log.error(f"The local address is invalid - {self._address}")
                    raise OSError(f"the local address is invalid - {self._address}") from None

            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as exc:
                sock.close()
                log.error(f"Cannot set the UDP socket option, err: {exc.errno}")
                raise

            try:
                sock.bind((bind_address, self._port))
            except OSError as exc:
                sock.close()
                log.error(f"Cannot bind the UDP address, err: {exc.errno}")
                raise

        self._sock = sock

    def _require_open(self) -> socket.socket:
        if self._sock is None:
            raise OSError("the UDP socket is not open")
        return self._sock

    def read(self, length: int = 200) -> tuple[bytes, str, int] | None:
        """Return (data, address, port) for a waiting datagram, or None if none waits."""
        if length <= 0:
            raise ValueError("length must be positive")
        sock = self._require_open()

        try:
            readable, _, _ = select.select([sock], [], [], 0)
        except (OSError, ValueError) as exc:
            log.error(f"Error returned from UDP select, err: {getattr(exc, 'errno', None)}")
            raise OSError("error returned from UDP select") from exc

        if not readable:
            return None

        try:
            data, (address, port) = sock.recvfrom(length)
        except OSError as exc:
            log.error(f"Error returned from recvfrom, err: {exc.errno}")
            raise

        if not data:
            log.error("Error returned from recvfrom, err: empty datagram")
            raise OSError("empty datagram received")

        return data, address, port

    def write(self, data: bytes, address: str, port: int) -> None:
        """Send a datagram; raises OSError if it cannot be sent whole."""
        if not data:
            raise ValueError("data must not be empty")
        sock = self._require_open()

        try:
            sent = sock.sendto(bytes(data), (address, port))
        except OSError as exc:
            log.error(f"Error returned from sendto, err: {exc.errno}")
            raise

        if sent != len(data):
            raise OSError(f"only {sent} of {len(data)} bytes were sent")

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None