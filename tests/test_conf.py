import pytest

from p25link.conf import (
    GatewayConfig,
    ReflectorConfig,
    load_gateway_config,
    load_reflector_config,
)


def _write(tmp_path, text):
    path = tmp_path / "test.ini"
    path.write_text(text)
    return str(path)


GATEWAY_INI = """\
[General]
Callsign=g4abc
RptAddress=127.0.0.1
RptPort=32010
LocalPort=42020
Daemon=1

[Id Lookup]
Name=DMRIds.dat
Time=24

[Voice]
Enabled=0
Language=de_DE
Directory=/usr/local/etc/Audio

[Log]
FilePath=/var/log
FileRoot=P25Gateway

[Network]
Port=42010
HostsFile1=./P25Hosts.txt
HostsFile2=./private/P25Hosts.txt
ReloadTime=60
ParrotAddress=10.0.0.2
ParrotPort=42011
Startup=10100
InactivityTimeout=10
Debug=1
"""


def test_gateway_defaults_for_empty_file(tmp_path):
    config = load_gateway_config(_write(tmp_path, ""))
    assert config == GatewayConfig()
    assert config.voice_enabled is True
    assert config.voice_language == "en_GB"
    assert config.network_parrot_address == "127.0.0.1"
    assert config.network_startup == 9999


def test_gateway_full_file(tmp_path):
    config = load_gateway_config(_write(tmp_path, GATEWAY_INI))
    assert config.callsign == "G4ABC"
    assert config.rpt_address == "127.0.0.1"
    assert config.rpt_port == 32010
    assert config.my_port == 42020
    assert config.daemon is True
    assert config.lookup_name == "DMRIds.dat"
    assert config.lookup_time == 24
    assert config.voice_enabled is False
    assert config.voice_language == "de_DE"
    assert config.voice_directory == "/usr/local/etc/Audio"
    assert config.log_file_path == "/var/log"
    assert config.log_file_root == "P25Gateway"
    assert config.network_port == 42010
    assert config.network_hosts1 == "./P25Hosts.txt"
    assert config.network_hosts2 == "./private/P25Hosts.txt"
    assert config.network_reload_time == 60
    assert config.network_parrot_address == "10.0.0.2"
    assert config.network_parrot_port == 42011
    assert config.network_startup == 10100
    assert config.network_inactivity_timeout == 10
    assert config.network_debug is True


def test_comments_and_unknown_sections_are_ignored(tmp_path):
    text = "[General]\n#RptPort=1111\nRptPort=2222\n[Other]\nRptPort=3333\n"
    config = load_gateway_config(_write(tmp_path, text))
    assert config.rpt_port == 2222


def test_keys_outside_a_section_are_ignored(tmp_path):
    config = load_gateway_config(_write(tmp_path, "RptPort=2222\n"))
    assert config.rpt_port == GatewayConfig().rpt_port


def test_section_header_matches_by_prefix(tmp_path):
    config = load_gateway_config(_write(tmp_path, "[Network] main\nPort=4000\n"))
    assert config.network_port == 4000


def test_value_keeps_spaces_after_separator(tmp_path):
    config = load_gateway_config(_write(tmp_path, "[Log]\nFileRoot=P25 Gateway\r\n"))
    assert config.log_file_root == "P25 Gateway"


def test_spaced_separator_gives_no_number(tmp_path):
    config = load_gateway_config(_write(tmp_path, "[General]\nRptPort = 3810\n"))
    assert config.rpt_port == 0


def test_flag_only_true_for_one(tmp_path):
    config = load_gateway_config(_write(tmp_path, "[Network]\nDebug=2\n"))
    assert config.network_debug is False


def test_missing_gateway_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_gateway_config(str(tmp_path / "missing.ini"))


def test_reflector_defaults_for_empty_file(tmp_path):
    config = load_reflector_config(_write(tmp_path, "# nothing\n"))
    assert config == ReflectorConfig()


def test_reflector_full_file(tmp_path):
    text = (
        "[General]\nDaemon=1\n"
        "[Id Lookup]\nName=DMRIds.dat\nTime=24\n"
        "[Log]\nDisplayLevel=1\nFileLevel=2\nFilePath=.\nFileRoot=P25Reflector\n"
        "[Network]\nPort=41000\nDebug=0\n"
    )
    config = load_reflector_config(_write(tmp_path, text))
    assert config.daemon is True
    assert config.lookup_name == "DMRIds.dat"
    assert config.lookup_time == 24
    assert config.log_display_level == 1
    assert config.log_file_level == 2
    assert config.log_file_path == "."
    assert config.log_file_root == "P25Reflector"
    assert config.network_port == 41000
    assert config.network_debug is False


def test_reflector_ignores_gateway_only_sections(tmp_path):
    config = load_reflector_config(_write(tmp_path, "[Voice]\nEnabled=1\n[Network]\nPort=5000\n"))
    assert config.network_port == 5000
    assert config.daemon is False


def test_missing_reflector_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_reflector_config(str(tmp_path / "missing.ini"))