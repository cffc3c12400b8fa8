"""Extraction of timed lyrics from MIDI/KAR karaoke files."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

__all__ = [
    "KarParseError",
    "LyricFlag",
    "KarLyric",
    "MidiTimestamp",
    "parse_kar",
    "format_lyrics",
    "get_lyrics",
]

_HEADER_RIFF = 0x52494646
_HEADER_MTHD = 0x4D546864
_HEADER_MTRK = 0x4D54726B
_DEFAULT_TEMPO = 500000
_MAX_META_LENGTH = 1024
_NO_NOTE_CLOCKS = 1000000000


class KarParseError(Exception):
    """Raised when MIDI data cannot be parsed into lyrics."""


class LyricFlag(IntEnum):
    """Layout marker carried by a lyric syllable."""

    NEW_PARAGRAPH = 0
    NEW_LINE = 1


@dataclass(frozen=True)
class KarLyric:
    """One lyric syllable with its converted timestamp."""

    text: bytes
    time: int
    flags: LyricFlag


@dataclass
class _MidiLyric:
    clocks: int
    track: int
    text: bytes
    flags: int


def _f32(value: float) -> float:
    """Round a value to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


class MidiTimestamp:
    """Converts absolute MIDI clock values into milliseconds using a tempo map."""

    def __init__(self, tempos: Sequence[tuple[int, int]], division: int) -> None:
        self._tempos = [(int(clocks), int(tempo)) for clocks, tempo in tempos]
        self._division = division
        self.reset()

    def reset(self) -> None:
        """Rewind to the beginning of the song."""
        self._current_ms = 0.0
        self._current_click = 0
        self._tempo_index = 0

    def time_for_clicks(self, clicks: int, tempo: int) -> float:
        """Return the duration in milliseconds of ``clicks`` at ``tempo``."""
        beats = _f32(_f32(float(clicks)) / _f32(float(self._division)))
        microseconds = _f32(beats * _f32(float(tempo)))
        return microseconds / 1000.0

    def advance_clocks(self, click: int) -> float:
        """Move forward to ``click`` and return the time reached in milliseconds."""
        if self._current_click > click:
            raise KarParseError("Malformed lyrics timing")

        clicks = click - self._current_click

        while clicks > 0 and self._tempo_index < len(self._tempos):
            tempo_clocks = self._tempos[self._tempo_index][0]
            remaining = max(tempo_clocks - self._current_click, 0)
            used = min(clicks, remaining)

            if used > 0 and self._tempo_index > 0:
                self._current_ms += self.time_for_clicks(
                    used, self._tempos[self._tempo_index - 1][1]
                )

            self._current_click += used
            clicks -= used
            remaining -= used

            if remaining == 0:
                self._tempo_index += 1

        if clicks > 0:
            if self._tempo_index == 0:
                raise KarParseError("Malformed lyrics timing")
            # The last tempo mark of the song holds forever.
            self._current_ms += self.time_for_clicks(
                clicks, self._tempos[self._tempo_index - 1][1]
            )
            self._current_click += clicks

        return self._current_ms


class _Reader:
    """Big-endian cursor over MIDI bytes."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0

    def byte(self) -> int:
        if self.pos >= len(self.data):
            raise KarParseError("Cannot read byte: premature end of file")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def word(self) -> int:
        if self.pos + 1 >= len(self.data):
            raise KarParseError("Cannot read word: premature end of file")
        value = int.from_bytes(self.data[self.pos:self.pos + 2], "big")
        self.pos += 2
        return value

    def dword(self) -> int:
        if self.pos + 3 >= len(self.data):
            raise KarParseError("Cannot read dword: premature end of file")
        value = int.from_bytes(self.data[self.pos:self.pos + 4], "big")
        self.pos += 4
        return value

    def varlen(self) -> int:
        value = 0
        for _ in range(5):
            c = self.byte()
            if not c & 0x80:
                return value | c
            value = (value | (c & 0x7F)) << 7
        raise KarParseError("Cannot read variable field")

    def read(self, length: int) -> bytes:
        if self.pos + length > len(self.data):
            raise KarParseError("Cannot read byte: premature end of file")
        chunk = self.data[self.pos:self.pos + length]
        self.pos += length
        return chunk


def _is_keyword(text: bytes) -> bool:
    if len(text) >= 2 and text[0] == ord("@") and ord("A") <= text[1] <= ord("Z"):
        return True
    return any(marker in text for marker in (b" SYX", b"Track-", b"%-", b"%+"))


def parse_kar(data: bytes) -> list[KarLyric]:
    """Parse MIDI/KAR bytes and return the lyrics of the preferred lyrics track."""
    reader = _Reader(data)

    header = reader.dword()
    if header == _HEADER_RIFF:
        reader.pos += 16
        header = reader.dword()

    if header != _HEADER_MTHD:
        raise KarParseError("Not a MIDI file")

    header_length = reader.dword()

    midi_format = reader.word()
    if midi_format > 2:
        raise KarParseError("Unsupported format")

    tracks = reader.word()

    divisions = reader.word()
    if divisions > 32768 or divisions == 0:
        raise KarParseError("Unsupported division")

    if midi_format == 0:
        tracks = 1

    lyrics: list[_MidiLyric] = []
    tempos: list[tuple[int, int]] = [(0, _DEFAULT_TEMPO)]
    lyric_counts = [0] * tracks

    preferred_track = -1
    last_channel = 0
    last_status = 0
    first_note_clocks = _NO_NOTE_CLOCKS
    next_line_flag = 0

    reader.pos = 8 + header_length

    for track in range(tracks):
        clocks = 0

        if reader.dword() != _HEADER_MTRK:
            raise KarParseError("Malformed track header")

        track_length = reader.dword()
        next_track_start = track_length + reader.pos

        while reader.pos < next_track_start:
            clocks += reader.varlen()
            msgtype = reader.byte()

            if msgtype == 0xFF:
                metatype = reader.byte()
                metalength = reader.varlen()

                if metatype == 3:
                    if metalength > _MAX_META_LENGTH:
                        raise KarParseError("Meta event too long")
                    title = reader.read(metalength).split(b"\0", 1)[0]
                    if title == b"Words":
                        preferred_track = track

                elif metatype in (1, 5):
                    if metalength > _MAX_META_LENGTH:
                        raise KarParseError("Meta event too long")
                    raw = reader.read(metalength)
                    text = raw.split(b"\0", 1)[0]

                    if _is_keyword(text):
                        continue

                    flags = next_line_flag
                    lyric_text = b""

                    if text[:1] == b"\\":
                        flags = LyricFlag.NEW_PARAGRAPH
                        lyric_text = text[1:]
                    elif text[:1] == b"/":
                        flags = LyricFlag.NEW_LINE
                        lyric_text = text[1:]
                    elif text in (b"\n", b"\r"):
                        # An empty line is kept but marks the following syllable.
                        if next_line_flag == LyricFlag.NEW_LINE:
                            next_line_flag = LyricFlag.NEW_PARAGRAPH
                        else:
                            next_line_flag = LyricFlag.NEW_LINE
                    else:
                        next_line_flag = (
                            LyricFlag.NEW_LINE
                            if b"\n" in text or b"\r" in text
                            else 0
                        )
                        lyric_text = text

                    lyrics.append(_MidiLyric(clocks, track, lyric_text, int(flags)))
                    lyric_counts[track] += metalength

                elif metatype == 0x51:
                    if metalength != 3:
                        raise KarParseError("Invalid tempo")
                    tempo = int.from_bytes(reader.read(3), "big")

                    last_clocks = tempos[-1][0]
                    if last_clocks > clocks:
                        raise KarParseError("Invalid tempo")
                    if last_clocks == clocks:
                        tempos[-1] = (clocks, tempo)
                    else:
                        tempos.append((clocks, tempo))

                else:
                    reader.pos += metalength

            elif msgtype in (0xF0, 0xF7):
                reader.pos += reader.varlen()

            else:
                if msgtype & 0x80:
                    last_status = (msgtype >> 4) & 0x07
                    last_channel = msgtype & 0x0F
                    if last_status != 0x07:
                        reader.byte()

                if last_status == 1:
                    if reader.byte() & 0x7F:
                        first_note_clocks = min(first_note_clocks, clocks)
                elif last_status in (0, 2, 3, 6):
                    reader.byte()
                elif last_status == 7:
                    if last_channel == 2:
                        reader.word()
                    elif last_channel == 3:
                        reader.byte()

    if preferred_track == -1 or lyric_counts[preferred_track] == 0:
        max_lyrics = 0
        for track, count in enumerate(lyric_counts):
            if count > max_lyrics:
                preferred_track = track
                max_lyrics = count

    if preferred_track == -1:
        raise KarParseError("No lyrics found")

    stamps = MidiTimestamp(tempos, divisions)
    first_note_time = stamps.advance_clocks(first_note_clocks)
    stamps.reset()

    result: list[KarLyric] = []
    for lyric in lyrics:
        if lyric.track != preferred_track:
            continue

        timing = stamps.advance_clocks(lyric.clocks)
        if timing < first_note_time:
            continue

        time = math.ceil((timing - first_note_time) / 100)
        result.append(KarLyric(lyric.text, time, LyricFlag(lyric.flags)))

    return result


def format_lyrics(lyrics: Sequence[KarLyric]) -> bytes:
    """Render lyrics as LRC-style timed text."""
    out = bytearray()
    for lyric in lyrics:
        minutes = lyric.time // 60000
        seconds = (lyric.time - minutes * 60000) // 1000
        millis = lyric.time - (minutes * 60000 + seconds * 1000)
        timing = f"[{minutes:02d}:{seconds:02d}.{millis // 10:02d}]".encode("ascii")

        if lyric.flags == LyricFlag.NEW_LINE:
            out += b"\n"

        out += timing + lyric.text
    return bytes(out)


def get_lyrics(data: bytes) -> bytes:
    """Return the timed lyrics of a MIDI/KAR file, or empty bytes if it cannot be parsed."""
    try:
        return format_lyrics(parse_kar(data))
    except KarParseError:
        return b""