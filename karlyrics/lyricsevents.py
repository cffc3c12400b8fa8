"""Background events (images, videos, colours) attached to lyric timings."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterator

from PIL import Image

__all__ = [
    "EventType",
    "EventError",
    "Event",
    "LyricsEvents",
    "parse_event",
    "is_valid_color_name",
]

_EVENT_PATTERN = re.compile(r"^(\w+)=(.*)$")
_VIDEO_START_PATTERN = re.compile(r"^(.*);STARTFRAME=(\d+)$")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_HEX_LENGTHS = frozenset({3, 6, 8, 9, 12})

_COLOR_NAMES = frozenset(
    """
    aliceblue antiquewhite aqua aquamarine azure beige bisque black
    blanchedalmond blue blueviolet brown burlywood cadetblue chartreuse
    chocolate coral cornflowerblue cornsilk crimson cyan darkblue darkcyan
    darkgoldenrod darkgray darkgreen darkgrey darkkhaki darkmagenta
    darkolivegreen darkorange darkorchid darkred darksalmon darkseagreen
    darkslateblue darkslategray darkslategrey darkturquoise darkviolet
    deeppink deepskyblue dimgray dimgrey dodgerblue firebrick floralwhite
    forestgreen fuchsia gainsboro ghostwhite gold goldenrod gray green
    greenyellow grey honeydew hotpink indianred indigo ivory khaki lavender
    lavenderblush lawngreen lemonchiffon lightblue lightcoral lightcyan
    lightgoldenrodyellow lightgray lightgreen lightgrey lightpink lightsalmon
    lightseagreen lightskyblue lightslategray lightslategrey lightsteelblue
    lightyellow lime limegreen linen magenta maroon mediumaquamarine
    mediumblue mediumorchid mediumpurple mediumseagreen mediumslateblue
    mediumspringgreen mediumturquoise mediumvioletred midnightblue mintcream
    mistyrose moccasin navajowhite navy oldlace olive olivedrab orange
    orangered orchid palegoldenrod palegreen paleturquoise palevioletred
    papayawhip peachpuff peru pink plum powderblue purple red rosybrown
    royalblue saddlebrown salmon sandybrown seagreen seashell sienna silver
    skyblue slateblue slategray slategrey snow springgreen steelblue tan teal
    thistle tomato transparent turquoise violet wheat white whitesmoke yellow
    yellowgreen
    """.split()
)


class EventType(IntEnum):
    """Kind of background event."""

    DEFAULT = 0
    IMAGE = 1
    VIDEO = 2
    COLOR = 3


class EventError(ValueError):
    """Raised when an event description is invalid."""


@dataclass(frozen=True)
class Event:
    """A parsed background event."""

    type: EventType
    data: str = ""
    timing: int = 0


def is_valid_color_name(name: str) -> bool:
    """Return whether ``name`` is a hex colour (#RGB etc.) or a known colour name."""
    if name.startswith("#"):
        digits = name[1:]
        return len(digits) in _HEX_LENGTHS and all(ch in _HEX_DIGITS for ch in digits)
    return name.replace(" ", "").lower() in _COLOR_NAMES


def _is_loadable_image(path: str) -> bool:
    try:
        with Image.open(path) as img:
            img.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError):
        return False
    return True


def parse_event(text: str) -> Event:
    """Parse an event description such as ``IMAGE=path`` or ``DEFAULT``."""
    stripped = text.strip()

    if stripped == "DEFAULT":
        return Event(EventType.DEFAULT)

    match = _EVENT_PATTERN.match(stripped)
    if not match:
        raise EventError("Invalid event format; must be like IMAGE=path")

    key, value = match.group(1), match.group(2)

    if key == "IMAGE":
        if not os.path.exists(value):
            raise EventError(f"Image file {value} does not exist")
        if not _is_loadable_image(value):
            raise EventError(f"File {value} is not a supported image")
        return Event(EventType.IMAGE, value)

    if key == "VIDEO":
        start = _VIDEO_START_PATTERN.match(value)
        filename = start.group(1) if start else value
        if not os.path.exists(filename):
            raise EventError(f"Video file {filename} does not exist")
        return Event(EventType.VIDEO, value)

    if key == "COLOR":
        if not is_valid_color_name(value):
            raise EventError(f"Color {value} is not valid")
        return Event(EventType.COLOR, value)

    raise EventError(f"Invalid event name '{key}'")


class LyricsEvents:
    """Timing-ordered collection of background events."""

    def __init__(self) -> None:
        self._events: dict[int, Event] = {}

    def add_event(self, timing: int, text: str) -> Event:
        """Parse ``text`` and store it at ``timing``, replacing any event there."""
        event = replace(parse_event(text), timing=timing)
        self._events[timing] = event
        return event

    def is_empty(self) -> bool:
        """Return whether no events are stored."""
        return not self._events

    def copy(self) -> LyricsEvents:
        """Return an independent copy of the stored events."""
        other = LyricsEvents()
        other._events = dict(self._events)
        return other

    @staticmethod
    def validate_event(text: str) -> str:
        """Return an error message for ``text``, or an empty string if it is valid."""
        try:
            parse_event(text)
        except EventError as exc:
            return str(exc)
        return ""

    def __iter__(self) -> Iterator[Event]:
        for timing in sorted(self._events):
            yield self._events[timing]

    def __len__(self) -> int:
        return len(self._events)