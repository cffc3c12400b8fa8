"""Karaoke lyrics tools: KAR/MIDI and KFN lyric extraction, lyric building and background events."""

__version__ = "4.1.0"

__all__ = ["__version__"]