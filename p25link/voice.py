"""Spoken link announcements built from recorded IMBE frames."""

from __future__ import annotations

import os
import re
from enum import Enum

from p25link import log
from p25link.stopwatch import StopWatch
from p25link.timer import Timer

P25_FRAME_TIME = 20
SILENCE_LENGTH = 4
IMBE_LENGTH = 11
LDU_LENGTH = 9
UNLINKED_TG = 9999

SILENCE = bytes([0x04, 0x0C, 0xFD, 0x7B, 0xFB, 0x7D, 0xF2, 0x7B, 0x3D, 0x9E, 0x44])

END_OF_TRANSMISSION = bytes([0x80]) + bytes(16)

_TOKEN_SPLIT = re.compile(r"[\t\r\n]+")
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _header(kind: int, length: int, body: bytes = b"", trailer: int | None = 0x02) -> bytes:
    frame = bytearray(length)
    frame[0] = kind
    frame[1:1 + len(body)] = body
    if trailer is not None:
        frame[-1] = trailer
    return bytes(frame)


_LDU_HEADER = bytes([0x02, 0x02, 0x0C, 0x0B, 0x12, 0x64, 0x00, 0x00, 0x80])
_LSD = bytes([0x00, 0x00, 0x02])

# (template, offset of the IMBE frame within it) for each frame of a superframe
_FRAMES: list[tuple[bytes, int]] = [
    (_header(0x62, 22, _LDU_HEADER, None), 10),
    (_header(0x63, 14), 1),
    (_header(0x64, 17), 5),
    (_header(0x65, 17), 5),
    (_header(0x66, 17), 5),
    (_header(0x67, 17, bytes([0xF0, 0x9D, 0x6A])), 5),
    (_header(0x68, 17, bytes([0x19, 0xD4, 0x26])), 5),
    (_header(0x69, 17, bytes([0xE0, 0xEB, 0x7B])), 5),
    (_header(0x6A, 16, _LSD, None), 4),
    (_header(0x6B, 22, _LDU_HEADER, None), 10),
    (_header(0x6C, 14), 1),
    (_header(0x6D, 17), 5),
    (_header(0x6E, 17), 5),
    (_header(0x6F, 17), 5),
    (_header(0x70, 17), 5),
    (_header(0x71, 17, bytes([0xAC, 0xB8, 0xA4])), 5),
    (_header(0x72, 17, bytes([0x9B, 0xDC, 0x75])), 5),
    (_header(0x73, 16, _LSD, None), 4),
]

_DST_FRAME = 3
_SRC_FRAME = 4


class VoiceStatus(Enum):
    NONE = "none"
    WAITING = "waiting"
    SENDING = "sending"


class Voice:
    """Announces link changes to the repeater once its transmission ends."""

    def __init__(self, directory: str, language: str, src_id: int) -> None:
        if not directory:
            raise ValueError("directory must not be empty")
        if not language:
            raise ValueError("language must not be empty")
        self._language = language
        self._indx_file = os.path.join(directory, language + ".indx")
        self._imbe_file = os.path.join(directory, language + ".imbe")
        self._src_id = src_id
        self._status = VoiceStatus.NONE
        self._timer = Timer(1000, 1)
        self._stopwatch = StopWatch()
        self._sent = 0
        self._n = 0
        self._dst_id = 0
        self._imbe = b""
        self._voice = bytearray()
        self._positions: dict[str, tuple[int, int]] = {}

    def open(self) -> None:
        """Load the index and IMBE files; raises OSError if they cannot be read."""
        try:
            with open(self._indx_file, encoding="utf-8", errors="replace") as handle:
                index = handle.readlines()
        except OSError:
            log.error(f"Unable to open the index file - {self._indx_file}")
            raise

        try:
            with open(self._imbe_file, "rb") as handle:
                self._imbe = handle.read()
        except OSError:
            log.error(f"Unable to open the IMBE file - {self._imbe_file}")
            raise

        if self._imbe:
            for line in index:
                tokens = [token for token in _TOKEN_SPLIT.split(line) if token]
                if len(tokens) >= 3:
                    start = _atoi(tokens[1]) * IMBE_LENGTH
                    length = _atoi(tokens[2]) * IMBE_LENGTH
                    self._positions[tokens[0]] = (start, length)

        log.info(f"Loaded the audio and index file for {self._language}")

    def linked_to(self, tg: int) -> None:
        """Prepare the announcement of a link to a talk group."""
        if "linkedto" in self._positions:
            words = ["linkedto"]
        else:
            words = ["linked", "2"]
        words.extend(str(tg))
        self._create_voice(tg, words)

    def unlinked(self) -> None:
        """Prepare the announcement that the gateway is not linked."""
        self._create_voice(UNLINKED_TG, ["notlinked"])

    def _create_voice(self, tg: int, words: list[str]) -> None:
        self._dst_id = tg

        length = 0
        for word in words:
            if word in self._positions:
                length += self._positions[word][1]
            else:
                log.warning(f'Unable to find character/phrase "{word}" in the index')

        length += 2 * SILENCE_LENGTH * IMBE_LENGTH
        partial = (length // IMBE_LENGTH) % LDU_LENGTH
        if partial > 0:
            length += (LDU_LENGTH - partial) * IMBE_LENGTH

        voice = bytearray(SILENCE * (length // IMBE_LENGTH))
        pos = SILENCE_LENGTH * IMBE_LENGTH
        for word in words:
            if word in self._positions:
                start, size = self._positions[word]
                segment = self._imbe[start:start + size]
                voice[pos:pos + len(segment)] = segment
                pos += size
        self._voice = voice

    def read(self) -> bytes | None:
        """The next frame due to the repeater, or None if none is due yet."""
        if self._status is not VoiceStatus.SENDING:
            return None

        offset = self._sent * IMBE_LENGTH
        if offset >= len(self._voice):
            self._timer.stop()
            self._voice = bytearray()
            self._status = VoiceStatus.NONE
            return END_OF_TRANSMISSION

        if self._sent >= self._stopwatch.elapsed() // P25_FRAME_TIME:
            return None

        template, imbe_at = _FRAMES[self._n]
        frame = bytearray(template)
        if self._n == _DST_FRAME:
            frame[1:4] = (self._dst_id & 0xFFFFFF).to_bytes(3, "big")
        elif self._n == _SRC_FRAME:
            frame[1:4] = (self._src_id & 0xFFFFFF).to_bytes(3, "big")
        frame[imbe_at:imbe_at + IMBE_LENGTH] = self._voice[offset:offset + IMBE_LENGTH]

        self._n = (self._n + 1) % len(_FRAMES)
        self._sent += 1
        return bytes(frame)

    def eof(self) -> None:
        """The repeater's transmission ended; send any prepared announcement shortly."""
        if not self._voice:
            return
        self._status = VoiceStatus.WAITING
        self._timer.start()

    def clock(self, ms: int) -> None:
        """Advance time; starts sending once the post-transmission pause is over."""
        self._timer.clock(ms)
        if self._timer.is_running() and self._timer.has_expired():
            if self._status is VoiceStatus.WAITING:
                self._stopwatch.start()
                self._status = VoiceStatus.SENDING
                self._sent = 0
                self._n = 0