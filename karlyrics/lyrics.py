"""Timed lyrics organised into blocks, lines and syllables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from karlyrics.lyricsevents import Event, LyricsEvents

__all__ = ["LyricsStateError", "Syllable", "Lyrics", "Line", "Block"]


class LyricsStateError(RuntimeError):
    """Raised when lyrics are edited outside of a begin/end scanning session."""


@dataclass(frozen=True)
class Syllable:
    """A piece of lyric text sung at a given time."""

    timing: int
    text: str = ""
    pitch: int = -1


Line = list[Syllable]
Block = list[Line]


class Lyrics:
    """Lyrics built syllable by syllable and grouped into lines and blocks.

    Lyrics are composed of one or more blocks; a block holds one or more
    lines and a line holds one or more syllables.
    """

    PITCH_NOTE_FREESTYLE = 1 << 17
    PITCH_NOTE_GOLDEN = 1 << 18

    def __init__(self) -> None:
        self._blocks: list[Block] = []
        self._events = LyricsEvents()
        self._scanning = False
        self._added_eols = 0
        self._reset_current()

    def _reset_current(self) -> None:
        self._timing: int | None = None
        self._pitch = -1
        self._text = ""

    def _require_scanning(self) -> None:
        if not self._scanning:
            raise LyricsStateError("Lyrics are not being built")

    def begin_lyrics(self) -> None:
        """Start building lyrics."""
        self._scanning = True
        self._added_eols = 0
        self._reset_current()

    def set_time(self, timems: int) -> None:
        """Set the time of the current syllable in milliseconds."""
        self._require_scanning()
        self._timing = timems

    def set_pitch(self, pitch: int) -> None:
        """Set the pitch of the current syllable."""
        self._require_scanning()
        self._pitch = pitch

    def append_text(self, text: str) -> None:
        """Append text to the current syllable."""
        self._require_scanning()
        self._text += text

    def add(self) -> None:
        """Store the current syllable; a syllable without a time is dropped."""
        self._require_scanning()

        if self._timing is None:
            self._pitch = -1
            self._text = ""
            return

        syllable = Syllable(self._timing, self._text, self._pitch)

        if not self._blocks or self._added_eols > 1:
            self._blocks.append([[syllable]])
        else:
            last_block = self._blocks[-1]
            if not last_block or self._added_eols > 0:
                last_block.append([syllable])
            else:
                last_block[-1].append(syllable)

        self._added_eols = 0
        self._reset_current()

    def add_end_of_line(self) -> None:
        """Store the current syllable and end the line; two in a row end the block."""
        self._require_scanning()
        self.add()
        self._added_eols += 1

    def end_lyrics(self) -> None:
        """Store the last syllable and finish building."""
        self.add()
        self._scanning = False

    def is_empty(self) -> bool:
        """Return whether there are no blocks."""
        return not self._blocks

    def total_blocks(self) -> int:
        """Return the number of blocks."""
        return len(self._blocks)

    def block(self, index: int) -> Block:
        """Return a copy of the block at ``index``."""
        return [list(line) for line in self._blocks[index]]

    def clear(self) -> None:
        """Remove all lyrics."""
        self._blocks.clear()

    def add_background_event(self, timing: int, text: str) -> Event:
        """Parse and store a background event; raises EventError if invalid."""
        return self._events.add_event(timing, text)

    def events(self) -> LyricsEvents:
        """Return a copy of the background events."""
        return self._events.copy()

    @staticmethod
    def pitch_to_note(pitch: int, show_octave: bool = True) -> str:
        """Return the text representation of a pitch."""
        return str(pitch)

    def __iter__(self) -> Iterator[Block]:
        for index in range(len(self._blocks)):
            yield self.block(index)

    def __len__(self) -> int:
        return len(self._blocks)