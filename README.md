# p25link

Tools for linking P25 digital voice repeaters over UDP:

- **p25-gateway** sits beside a repeater (an MMDVM host). It links the repeater
  to a P25 reflector chosen by talk group, polls the reflector every five
  seconds to keep the link up, drops the link after a period of inactivity or
  when the reflector has been silent for two minutes, and can announce link
  changes by voice.
- **p25-reflector** takes in repeaters that poll it and sends each transmission
  on to every other linked repeater. A repeater that has not been heard from
  for two minutes is dropped.
- **p25-parrot** records a transmission and, two seconds after it ends, plays
  it back to the sender.

## Installing

```
pip install .
```

Python 3.10 or later is needed. There are no third-party dependencies.
The tests use pytest (`pip install .[test]`).

## Running

```
p25-gateway [-v|--version] [filename]
p25-reflector [-v|--version] [filename]
p25-parrot <port>
```

If no file is given, the gateway reads `/etc/P25Gateway.ini` and the reflector
reads `/etc/P25Reflector.ini` (`P25Gateway.ini` and `P25Reflector.ini` in the
working directory on Windows). `-v` prints the version; any other option
prints the usage line and exits with status 1. The programs run until they are
interrupted.

### Gateway configuration

```ini
[General]
Callsign=N0CALL
RptAddress=127.0.0.1
RptPort=32010
LocalPort=42020
Daemon=0

[Id Lookup]
Name=DMRIds.dat
Time=24

[Voice]
Enabled=1
Language=en_GB
Directory=./Audio

[Log]
FilePath=.
FileRoot=P25Gateway

[Network]
Port=42010
HostsFile1=./P25Hosts.txt
HostsFile2=./private/P25Hosts.txt
ReloadTime=60
ParrotAddress=127.0.0.1
ParrotPort=42011
Startup=9999
InactivityTimeout=10
Debug=0
```

- A talk group of 9999 means "not linked". The repeater links or unlinks by
  keying up on a talk group.
- `Startup` is a reflector to link to at start; after `InactivityTimeout`
  minutes without traffic the gateway returns to it (or, with `Startup=9999`,
  unlinks).
- If `ParrotPort` is set, talk group 10 goes to the parrot.
- Each line of a hosts file holds a reflector ID, a host name and a port,
  separated by white space. Lines starting with `#` are skipped. IDs in the
  second file never replace ones from the first. Both files are read again
  every `ReloadTime` minutes (0 means never).
- The ID lookup file holds a DMR ID and a callsign per line; it is read again
  every `Time` hours (0 means never).
- Voice announcements need `<Language>.indx` and `<Language>.imbe` in
  `Directory`; if they cannot be read, the gateway runs without voice.
- The gateway logs at every level to the console and to
  `<FilePath>/<FileRoot>-YYYY-MM-DD.log`, one file per UTC day.

### Reflector configuration

```ini
[General]
Daemon=0

[Id Lookup]
Name=DMRIds.dat
Time=24

[Log]
DisplayLevel=1
FileLevel=1
FilePath=.
FileRoot=P25Reflector

[Network]
Port=41000
Debug=0
```

Log levels run from 1 (debug) to 6 (fatal); 0 turns that output off. The list
of linked repeaters is logged every two minutes.

### What `Daemon=1` does and does not do

On POSIX systems `Daemon=1` starts a new session, changes to `/`, switches to
the `mmdvm` user when started as root, and detaches standard input and output.
The process does not fork itself into the background; run it under a service
manager for that.

## Using the library

These building blocks can also be imported on their own:

- `p25link.timer.Timer`: a tick-driven timeout.
- `p25link.stopwatch.StopWatch`: measures elapsed milliseconds.
- `p25link.log`: levelled logging (`initialise`, `log`, `debug`, `message`,
  `info`, `warning`, `error`, `fatal`, `finalise`; levels in `LogLevel`).
- `p25link.conf`: `load_gateway_config` and `load_reflector_config`, returning
  `GatewayConfig` and `ReflectorConfig`.
- `p25link.udpsocket`: `UDPSocket` and the `lookup` host name resolver.
- `p25link.network`: `GatewayNetwork` and `ReflectorNetwork` endpoints.
- `p25link.dmrlookup.DMRLookup`: maps DMR IDs to callsigns.
- `p25link.reflectors.Reflectors`: the list of reflectors from the hosts files.
- `p25link.voice.Voice`: builds spoken link announcements.
- `p25link.parrotbuffer.ParrotBuffer`: record and play back frames.
- `p25link.utils`: hex dumps and bit/byte conversions.

```python
from p25link.timer import Timer

timer = Timer(1000, 5, 0)
timer.start(5, 0)
timer.clock(5001)
assert timer.has_expired()
```