import socket
import time

import pytest

from p25link import log
from p25link.network import GatewayNetwork, ReflectorNetwork


@pytest.fixture(autouse=True)
def _quiet_log():
    log.initialise("", "", 0, 0)
    yield
    log.finalise()


@pytest.fixture
def peer():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def _receive(net):
    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        received = net.read_data()
        if received is not None:
            return received
        time.sleep(0.01)
    raise AssertionError("nothing received")


def test_poll_carries_padded_callsign(peer):
    with GatewayNetwork(0, "G4ABC", False) as net:
        net.write_poll("127.0.0.1", peer.getsockname()[1])
        data, _ = peer.recvfrom(200)
    assert data == b"\xf0G4ABC     "


def test_unlink_carries_truncated_callsign(peer):
    with GatewayNetwork(0, "ABCDEFGHIJKLMN", False) as net:
        net.write_unlink("127.0.0.1", peer.getsockname()[1])
        data, _ = peer.recvfrom(200)
    assert data == b"\xf1ABCDEFGHIJ"
    assert len(data) == 11


def test_gateway_data_round_trip(peer):
    frame = bytes([0x64, 0x01, 0x02, 0x03])
    with GatewayNetwork(0, "G4ABC", False) as net:
        net.write_data(frame, "127.0.0.1", peer.getsockname()[1])
        data, sender = peer.recvfrom(200)
        assert data == frame
        peer.sendto(b"\x65\x00\x00\x0a", sender)
        received, address, port = _receive(net)
    assert received == b"\x65\x00\x00\x0a"
    assert address == "127.0.0.1"
    assert port == peer.getsockname()[1]


def test_reflector_data_round_trip(peer):
    with ReflectorNetwork(0, False) as net:
        net.write_data(b"\x80", "127.0.0.1", peer.getsockname()[1])
        data, sender = peer.recvfrom(200)
        assert data == b"\x80"
        peer.sendto(b"\xf0hello", sender)
        received, _, _ = _receive(net)
    assert received == b"\xf0hello"


def test_read_with_nothing_waiting_returns_none():
    with ReflectorNetwork(0, False) as net:
        assert net.read_data() is None


def test_empty_data_is_rejected():
    with ReflectorNetwork(0, False) as net:
        with pytest.raises(ValueError):
            net.write_data(b"", "127.0.0.1", 1234)


def test_zero_port_is_rejected():
    with GatewayNetwork(0, "G4ABC", False) as net:
        with pytest.raises(ValueError):
            net.write_poll("127.0.0.1", 0)
        with pytest.raises(ValueError):
            net.write_data(b"\x64", "127.0.0.1", 0)


def test_debug_dumps_sent_poll(peer, capsys):
    log.initialise("", "", 0, 1)
    with GatewayNetwork(0, "G4ABC", True) as net:
        net.write_poll("127.0.0.1", peer.getsockname()[1])
        peer.recvfrom(200)
    out = capsys.readouterr().out
    assert "P25 Network Poll Sent" in out
    assert "F0 47 34 41 42 43" in out