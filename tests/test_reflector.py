import pytest

from p25link import log
from p25link.dmrlookup import DMRLookup
from p25link.reflector import ReflectorServer, Repeater, main

ADDR_A = "192.0.2.1"
ADDR_B = "192.0.2.2"
PORT = 41000


class FakeNetwork:
    def __init__(self):
        self.writes = []

    def write_data(self, data, address, port):
        self.writes.append((bytes(data), address, port))


@pytest.fixture(autouse=True)
def quiet_log(tmp_path):
    log.initialise(str(tmp_path), "test", 0, 1)
    yield
    log.finalise()


@pytest.fixture
def lookup(tmp_path):
    path = tmp_path / "ids.txt"
    path.write_text("1234567 n0call\n")
    table = DMRLookup(str(path))
    table.load()
    return table


def poll(callsign):
    return bytes([0xF0]) + callsign.encode("latin-1").ljust(10)


def frame(kind, *payload):
    return (bytes([kind]) + bytes(payload)).ljust(17, b"\x00")


def linked(lookup, network):
    server = ReflectorServer("unused.ini")
    server._receive(network, lookup, poll("AA1AAA"), ADDR_A, PORT)
    server._receive(network, lookup, poll("BB1BBB"), ADDR_B, PORT)
    network.writes.clear()
    return server


def test_version_option(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "P25Reflector version 20161101"


def test_unknown_option_is_rejected(capsys):
    assert main(["-x"]) == 1
    assert "Usage: P25Reflector" in capsys.readouterr().err


def test_run_without_ini_file_returns(tmp_path, capsys):
    ReflectorServer(str(tmp_path / "missing.ini")).run()
    assert "cannot read the .ini file" in capsys.readouterr().err


def test_poll_adds_repeater_and_is_echoed(lookup):
    network = FakeNetwork()
    server = ReflectorServer("unused.ini")
    data = poll("AA1AAA")
    server._receive(network, lookup, data, ADDR_A, PORT)
    rpt = server.find_repeater(ADDR_A, PORT)
    assert rpt.callsign == "AA1AAA    "
    assert network.writes == [(data, ADDR_A, PORT)]


def test_repeated_poll_does_not_duplicate(lookup):
    network = FakeNetwork()
    server = ReflectorServer("unused.ini")
    server._receive(network, lookup, poll("AA1AAA"), ADDR_A, PORT)
    server._receive(network, lookup, poll("AA1AAA"), ADDR_A, PORT)
    assert len(server.repeaters) == 1


def test_find_repeater_matches_address_and_port(lookup):
    server = linked(lookup, FakeNetwork())
    assert server.find_repeater(ADDR_A, PORT + 1) is None
    assert server.find_repeater(ADDR_B, PORT).callsign.strip() == "BB1BBB"


def test_unlink_removes_repeater(lookup):
    network = FakeNetwork()
    server = linked(lookup, network)
    server._receive(network, lookup, bytes([0xF1]) + b"AA1AAA    ", ADDR_A, PORT)
    assert server.find_repeater(ADDR_A, PORT) is None
    assert [rpt.address for rpt in server.repeaters] == [ADDR_B]


def test_data_is_relayed_to_others_only(lookup):
    network = FakeNetwork()
    server = linked(lookup, network)
    data = frame(0x62)
    server._receive(network, lookup, data, ADDR_A, PORT)
    assert network.writes == [(data, ADDR_B, PORT)]


def test_unknown_source_is_not_relayed(lookup, capsys):
    network = FakeNetwork()
    server = linked(lookup, network)
    server._receive(network, lookup, frame(0x62), "192.0.2.9", PORT)
    assert network.writes == []
    assert "Data received from an unknown source - 192.0.2.9" in capsys.readouterr().out


def test_second_repeater_blocked_until_end_of_transmission(lookup):
    network = FakeNetwork()
    server = linked(lookup, network)
    server._receive(network, lookup, frame(0x62), ADDR_A, PORT)
    network.writes.clear()

    server._receive(network, lookup, frame(0x62), ADDR_B, PORT)
    assert network.writes == []

    server._receive(network, lookup, frame(0x80), ADDR_A, PORT)
    network.writes.clear()
    data = frame(0x63)
    server._receive(network, lookup, data, ADDR_B, PORT)
    assert network.writes == [(data, ADDR_A, PORT)]


def test_transmission_header_is_logged_with_callsign(lookup, capsys):
    network = FakeNetwork()
    server = linked(lookup, network)
    src = (1234567).to_bytes(3, "big")
    server._receive(network, lookup, frame(0x64, 0x00), ADDR_A, PORT)
    server._receive(network, lookup, frame(0x65, 0x00, 0x00, 0x0A), ADDR_A, PORT)
    server._receive(network, lookup, frame(0x66, *src), ADDR_A, PORT)
    out = capsys.readouterr().out
    assert "Transmission from N0CALL at AA1AAA     to TG 10" in out


def test_expired_repeaters_are_removed_one_per_tick(lookup):
    server = linked(lookup, FakeNetwork())
    server._clock(121000)
    assert len(server.repeaters) == 1
    server._clock(0)
    assert server.repeaters == []


def test_watchdog_ends_transmission(lookup):
    network = FakeNetwork()
    server = linked(lookup, network)
    server._receive(network, lookup, frame(0x62), ADDR_A, PORT)
    server._clock(2000)
    network.writes.clear()
    data = frame(0x62)
    server._receive(network, lookup, data, ADDR_B, PORT)
    assert network.writes == [(data, ADDR_A, PORT)]


def test_dump_repeaters_with_none(capsys):
    ReflectorServer("unused.ini").dump_repeaters()
    assert "No repeaters linked" in capsys.readouterr().out


def test_dump_repeaters_lists_each(capsys):
    server = ReflectorServer("unused.ini")
    rpt = Repeater(ADDR_A, PORT, "AA1AAA")
    rpt.timer.start()
    server.repeaters.append(rpt)
    server.dump_repeaters()
    out = capsys.readouterr().out
    assert "Currently linked repeaters:" in out
    assert f"AA1AAA ({ADDR_A}:{PORT}) 0/120" in out