"""Reader for KaraFun (KFN) karaoke containers."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import IO, BinaryIO

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

__all__ = [
    "KfnError",
    "EntryType",
    "KfnEntry",
    "KfnParser",
    "songini_to_lrc",
]

_SIGNATURE = b"KFNB"
_END_OF_HEADER = b"ENDH"
_KEY_FIELD = b"FLID"
_AES_BLOCK = 16

_LINE_BREAKS = re.compile(r"[\r\n]+")
_SYNC_LINE = re.compile(r"^Sync[0-9]+=(.+)")
_TEXT_LINE = re.compile(r"^Text[0-9]+=(.*)")


class KfnError(Exception):
    """Raised when a KFN file cannot be opened, parsed or extracted."""


class EntryType(IntEnum):
    """Kinds of files stored in a KFN container."""

    SONGTEXT = 1
    MUSIC = 2
    IMAGE = 3
    FONT = 4
    VIDEO = 5


@dataclass(frozen=True)
class KfnEntry:
    """A directory entry of a KFN container."""

    filename: str
    type: int
    length_in: int
    length_out: int
    offset: int
    flags: int

    @property
    def encrypted(self) -> bool:
        """Whether the stored data is AES-encrypted."""
        return bool(self.flags & 0x01)


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _format_sync(value: int) -> str:
    sign = -1 if value < 0 else 1
    minutes = sign * (abs(value) // 6000)
    rest = value - minutes * 6000
    seconds = sign * (abs(rest) // 100)
    hundredths = value - (minutes * 6000 + seconds * 100)
    return f"[{minutes}:{seconds:02d}.{hundredths:02d}]"


def songini_to_lrc(songini: str) -> str:
    """Convert the text of a KFN ``Song.ini`` into LRC lyrics."""
    lines = _LINE_BREAKS.sub("\n", songini).split("\n")

    texts: list[str] = []
    syncs: list[int] = []

    for line in lines:
        sync = _SYNC_LINE.match(line)
        if sync:
            syncs.extend(_to_int(value) for value in sync.group(1).split(","))

        text = _TEXT_LINE.match(line)
        if text:
            if text.group(1):
                for word in text.group(1).split(" "):
                    texts.extend(word.split("/"))
                    # Words were split by space, so restore it after each word.
                    texts[-1] += " "

            if len(texts) > 2 and texts[-2] != "\n":
                texts.append("\n")

    sync_iter = iter(syncs)
    has_linefeed = False
    lines_no_block = 0
    last_sync: int | None = None
    # Timing marks are not necessarily sorted in the source file.
    sorted_lyrics: dict[int, str] = {}

    for text in texts:
        if text == "\n":
            if last_sync is None:
                continue

            if has_linefeed:
                lines_no_block = 0
            else:
                lines_no_block += 1
                if lines_no_block > 6:
                    lines_no_block = 0
                    sorted_lyrics[last_sync] += "\n"

            has_linefeed = True
            sorted_lyrics[last_sync] += "\n"
            continue

        has_linefeed = False

        sync_value = next(sync_iter, None)
        if sync_value is None:
            continue

        last_sync = sync_value
        sorted_lyrics[last_sync] = text

    output = "".join(
        _format_sync(key) + sorted_lyrics[key] for key in sorted(sorted_lyrics)
    )
    return output.strip()


class KfnParser:
    """Parses the header and directory of a KFN file and extracts its contents."""

    def __init__(self) -> None:
        self._file: BinaryIO | None = None
        self._entries: list[KfnEntry] = []
        self._aes_key = b""
        self._music_index: int | None = None
        self._songini_index: int | None = None

    def open(self, filename: str) -> None:
        """Open ``filename`` and read its header and directory."""
        self.close()
        self._entries = []
        self._aes_key = b""
        self._music_index = None
        self._songini_index = None

        try:
            self._file = open(filename, "rb")
        except OSError as exc:
            raise KfnError("Cannot open file for reading") from exc

        try:
            self._parse()
        except BaseException:
            self.close()
            raise

    def _parse(self) -> None:
        if self._read(4) != _SIGNATURE:
            raise KfnError("Not a valid KFN file")

        while True:
            name = self._read(4)
            field_type = self._read_byte()
            len_or_value = self._read_dword()

            # Type 2 carries variable-length data.
            if field_type == 2:
                data = self._read(len_or_value)
                if name == _KEY_FIELD:
                    self._aes_key = data

            if name == _END_OF_HEADER:
                break

        total = self._read_dword()
        entries = []
        for _ in range(total):
            filename = self._read(self._read_dword()).decode("utf-8", errors="replace")
            entry_type = self._read_dword()
            length_out = self._read_dword()
            offset = self._read_dword()
            length_in = self._read_dword()
            flags = self._read_dword()
            entries.append(
                KfnEntry(filename, entry_type, length_in, length_out, offset, flags)
            )

        # Offsets are relative to the end of the directory.
        base = self._handle().tell()
        self._entries = [replace(entry, offset=entry.offset + base) for entry in entries]

        for index, entry in enumerate(self._entries):
            if entry.type == EntryType.SONGTEXT:
                self._songini_index = index
            if entry.type == EntryType.MUSIC and self._music_index is None:
                self._music_index = index

        if self._music_index is None or self._songini_index is None:
            raise KfnError("File doesn't have any music or lyrics")

    def close(self) -> None:
        """Close the underlying file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> KfnParser:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def entries(self) -> list[KfnEntry]:
        """Return the directory entries."""
        return list(self._entries)

    def music_file_extension(self) -> str:
        """Return the extension of the stored music file name, or an empty string."""
        if self._music_index is None:
            return ""
        name = self._entries[self._music_index].filename
        _, dot, ext = name.rpartition(".")
        return ext if dot else ""

    def extract(self, entry: KfnEntry) -> bytes:
        """Return the contents of ``entry``, decrypting it when needed."""
        handle = self._handle()
        handle.seek(entry.offset)
        data = handle.read(entry.length_in)

        if len(data) != entry.length_in:
            raise KfnError("File truncated")

        if not entry.encrypted:
            return data

        try:
            decryptor = Cipher(algorithms.AES(self._aes_key), modes.ECB()).decryptor()
        except ValueError as exc:
            raise KfnError("Decryption failed") from exc

        usable = len(data) - len(data) % _AES_BLOCK
        plain = decryptor.update(data[:usable])
        # The stored data is rounded up to the block size.
        return plain[: entry.length_out].ljust(entry.length_out, b"\0")

    def write_music_file(self, outfile: IO[bytes]) -> int:
        """Write the music file to ``outfile`` and return the number of bytes written."""
        if self._music_index is None:
            raise KfnError("File doesn't have any music")

        data = self.extract(self._entries[self._music_index])
        if not data:
            raise KfnError("Music file is empty")

        outfile.write(data)
        return len(data)

    def lyrics_as_lrc(self) -> str:
        """Return the lyrics of the song as LRC text."""
        if self._songini_index is None:
            return ""

        data = self.extract(self._entries[self._songini_index])
        if not data:
            return ""

        return songini_to_lrc(data.decode("utf-8", errors="replace"))

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise KfnError("File is not open")
        return self._file

    def _read(self, length: int) -> bytes:
        data = self._handle().read(length)
        if len(data) != length:
            raise KfnError("Cannot read data: incomplete file")
        return data

    def _read_byte(self) -> int:
        return self._read(1)[0]

    def _read_dword(self) -> int:
        return int.from_bytes(self._read(4), "little")