# karlyrics

A library for working with karaoke lyrics:

- `karlyrics.kar` pulls timed lyrics out of KAR/MIDI files as LRC-style text;
- `karlyrics.kfn` opens KaraFun `.kfn` files, lists their entries, extracts
  the music track (AES-decrypting it where needed) and converts the embedded
  `Song.ini` lyrics to LRC;
- `karlyrics.lyrics` builds lyrics as blocks of lines of syllables, with
  timing and pitch;
- `karlyrics.lyricsevents` parses and stores background events (`IMAGE=`,
  `VIDEO=`, `COLOR=`, `DEFAULT`) at given times;
- `karlyrics.timeformat` formats player positions as `mm:ss`;
- `karlyrics.logger` writes a timestamped log file;
- `karlyrics.validator` holds the `ValidatorError` record;
- `karlyrics.version` gives the application name and version.

## Installation

```
pip install karlyrics
```

## Usage

### Lyrics from a KAR/MIDI file

```python
from pathlib import Path
from karlyrics.kar import get_lyrics

text = get_lyrics(Path("song.kar").read_bytes())
print(text.decode("utf-8", errors="replace"))   # "[00:12.34]Hel[00:12.80]lo ..."
```

`get_lyrics` returns `bytes`, and empty bytes when the data cannot be
parsed. `parse_kar` returns the list of `KarLyric` items (text, time, flag)
and raises `KarParseError` with the reason; `format_lyrics` turns such a list
into the timed text. The track titled `Words` is preferred; otherwise the
track with the most lyric text is used. Times are counted from the first
note played. `MidiTimestamp` converts MIDI clock values to milliseconds
with a tempo map.

### KaraFun files

```python
from karlyrics.kfn import KfnParser

with KfnParser() as kfn:
    kfn.open("song.kfn")
    for entry in kfn.entries():
        print(entry.filename, entry.type, entry.encrypted)
    ext = kfn.music_file_extension()
    with open(f"song.{ext}", "wb") as out:
        kfn.write_music_file(out)       # returns the number of bytes written
    print(kfn.lyrics_as_lrc())
```

`KfnError` is raised for files that cannot be opened, are not KFN files,
are truncated, or carry no music or lyrics. `extract(entry)` returns the
contents of any entry; `EntryType` names the entry kinds.
`songini_to_lrc` converts `Song.ini` text on its own.

### Building lyrics

```python
from karlyrics.lyrics import Lyrics

lyrics = Lyrics()
lyrics.begin_lyrics()
lyrics.set_time(1000)
lyrics.append_text("Hel")
lyrics.add()
lyrics.set_time(1500)
lyrics.append_text("lo")
lyrics.add_end_of_line()
lyrics.end_lyrics()

print(lyrics.total_blocks())    # 1
print(lyrics.block(0))          # a list of lines, each a list of Syllable
```

One end of line starts a new line; two in a row start a new block. A
syllable without a time is dropped. Calling the building methods outside
`begin_lyrics()`/`end_lyrics()` raises `LyricsStateError`.
`add_background_event` stores an event and `events()` returns a copy of them.

### Background events

```python
from karlyrics.lyricsevents import LyricsEvents, is_valid_color_name

events = LyricsEvents()
events.add_event(0, "COLOR=red")                        # raises EventError if invalid
print(LyricsEvents.validate_event("COLOR=notacolour"))  # "Color notacolour is not valid"
print(is_valid_color_name("#ff0000"))                   # True
```

An `IMAGE=` event must name an existing file that Pillow can load; a
`VIDEO=` event (optionally ending in `;STARTFRAME=n`) must name an existing
file. Iterating over `LyricsEvents` yields the events in time order.

### Time formatting

```python
from karlyrics.timeformat import tick_to_string

tick_to_string(125000)   # "02:05"
```

Negative times and times of an hour or more give an empty string.

### Logging

```python
from karlyrics.logger import Logger

log = Logger()
path = log.open(["/var/tmp", "/tmp"])   # first writable directory wins
log.debug("loaded %s", "song.kar")
log.error("failed")
log.close()
```

`open` raises `OSError` when no directory can be written.

## What it does not do

This is a library only. It has no command-line program, no editor window,
no audio or video playback, and it does not draw background events or
export CD+G or video files.