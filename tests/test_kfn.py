import io

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from karlyrics.kfn import EntryType, KfnError, KfnParser, songini_to_lrc

AES_KEY = bytes(range(16))


def _dword(value):
    return value.to_bytes(4, "little")


def _field(name, field_type, value=0, data=b""):
    if field_type == 2:
        return name + bytes([2]) + _dword(len(data)) + data
    return name + bytes([field_type]) + _dword(value)


def _encrypt(data):
    padded = data.ljust((len(data) + 15) // 16 * 16, b"\0")
    encryptor = Cipher(algorithms.AES(AES_KEY), modes.ECB()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def build_kfn(files, key=None, signature=b"KFNB"):
    """files: list of (name, type, plaintext, encrypted)."""
    header = signature + _field(b"DIFM", 1, 5) + _field(b"TITL", 2, data=b"Song")
    if key is not None:
        header += _field(b"FLID", 2, data=key)
    header += _field(b"ENDH", 1, 0xFFFFFFFF)

    directory = _dword(len(files))
    blobs = b""
    for name, entry_type, plain, encrypted in files:
        stored = _encrypt(plain) if encrypted else plain
        encoded = name.encode("utf-8")
        directory += _dword(len(encoded)) + encoded
        directory += _dword(entry_type)
        directory += _dword(len(plain))
        directory += _dword(len(blobs))
        directory += _dword(len(stored))
        directory += _dword(1 if encrypted else 0)
        blobs += stored
    return header + directory + blobs


SONGINI = "[Eff1]\r\nSync0=100,200\r\nText0=Hello/world\r\n"
MUSIC = b"ID3" + bytes(range(200))


@pytest.fixture
def kfn_path(tmp_path):
    path = tmp_path / "song.kfn"
    path.write_bytes(
        build_kfn(
            [
                ("Song.ini", EntryType.SONGTEXT, SONGINI.encode(), False),
                ("track.mp3", EntryType.MUSIC, MUSIC, False),
            ]
        )
    )
    return path


def test_entries_round_trip(kfn_path):
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        entries = parser.entries()
    assert [e.filename for e in entries] == ["Song.ini", "track.mp3"]
    assert [e.type for e in entries] == [EntryType.SONGTEXT, EntryType.MUSIC]
    assert entries[1].length_in == len(MUSIC)
    assert entries[1].offset == entries[0].offset + len(SONGINI.encode())


def test_extract_plain(kfn_path):
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        music = parser.entries()[1]
        assert parser.extract(music) == MUSIC


def test_music_file_extension(kfn_path):
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        assert parser.music_file_extension() == "mp3"


def test_music_file_extension_without_dot(tmp_path):
    path = tmp_path / "x.kfn"
    path.write_bytes(
        build_kfn(
            [
                ("Song.ini", EntryType.SONGTEXT, b"", False),
                ("music", EntryType.MUSIC, MUSIC, False),
            ]
        )
    )
    with KfnParser() as parser:
        parser.open(str(path))
        assert parser.music_file_extension() == ""


def test_write_music_file(kfn_path):
    out = io.BytesIO()
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        written = parser.write_music_file(out)
    assert out.getvalue() == MUSIC
    assert written == len(MUSIC)


def test_lyrics_as_lrc(kfn_path):
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        lrc = parser.lyrics_as_lrc()
    assert lrc == "[0:01.00]Hello[0:02.00]world"
    assert lrc == songini_to_lrc(SONGINI)


def test_encrypted_entry_is_decrypted(tmp_path):
    plain = b"encrypted music payload of odd length"
    path = tmp_path / "enc.kfn"
    path.write_bytes(
        build_kfn(
            [
                ("Song.ini", EntryType.SONGTEXT, SONGINI.encode(), True),
                ("a.ogg", EntryType.MUSIC, plain, True),
            ],
            key=AES_KEY,
        )
    )
    with KfnParser() as parser:
        parser.open(str(path))
        music = parser.entries()[1]
        assert music.encrypted
        assert music.length_in % 16 == 0
        assert music.length_in > music.length_out
        assert parser.extract(music) == plain
        assert parser.lyrics_as_lrc() == songini_to_lrc(SONGINI)


def test_encrypted_without_key_fails(tmp_path):
    path = tmp_path / "nokey.kfn"
    path.write_bytes(
        build_kfn(
            [
                ("Song.ini", EntryType.SONGTEXT, b"x", False),
                ("a.ogg", EntryType.MUSIC, b"data", True),
            ]
        )
    )
    with KfnParser() as parser:
        parser.open(str(path))
        with pytest.raises(KfnError, match="Decryption failed"):
            parser.extract(parser.entries()[1])


def test_first_music_and_last_songtext_are_used(tmp_path):
    path = tmp_path / "multi.kfn"
    path.write_bytes(
        build_kfn(
            [
                ("first.ini", EntryType.SONGTEXT, b"Sync0=1\nText0=one", False),
                ("first.mp3", EntryType.MUSIC, b"first", False),
                ("second.wav", EntryType.MUSIC, b"second", False),
                ("last.ini", EntryType.SONGTEXT, SONGINI.encode(), False),
            ]
        )
    )
    out = io.BytesIO()
    with KfnParser() as parser:
        parser.open(str(path))
        parser.write_music_file(out)
        assert parser.music_file_extension() == "mp3"
        assert parser.lyrics_as_lrc() == songini_to_lrc(SONGINI)
    assert out.getvalue() == b"first"


def test_bad_signature(tmp_path):
    path = tmp_path / "bad.kfn"
    path.write_bytes(build_kfn([], signature=b"XXXX"))
    with pytest.raises(KfnError, match="Not a valid KFN file"):
        KfnParser().open(str(path))


def test_missing_music(tmp_path):
    path = tmp_path / "nomusic.kfn"
    path.write_bytes(build_kfn([("Song.ini", EntryType.SONGTEXT, b"x", False)]))
    with pytest.raises(KfnError, match="music or lyrics"):
        KfnParser().open(str(path))


def test_truncated_header(tmp_path):
    path = tmp_path / "trunc.kfn"
    data = build_kfn([("Song.ini", EntryType.SONGTEXT, b"x", False)])
    path.write_bytes(data[:20])
    with pytest.raises(KfnError, match="incomplete file"):
        KfnParser().open(str(path))


def test_truncated_data(tmp_path):
    path = tmp_path / "short.kfn"
    data = build_kfn(
        [
            ("Song.ini", EntryType.SONGTEXT, b"x", False),
            ("a.mp3", EntryType.MUSIC, MUSIC, False),
        ]
    )
    path.write_bytes(data[:-10])
    with KfnParser() as parser:
        parser.open(str(path))
        with pytest.raises(KfnError, match="File truncated"):
            parser.extract(parser.entries()[1])


def test_nonexistent_file(tmp_path):
    with pytest.raises(KfnError, match="Cannot open file"):
        KfnParser().open(str(tmp_path / "missing.kfn"))


def test_extract_after_close_fails(kfn_path):
    with KfnParser() as parser:
        parser.open(str(kfn_path))
        entry = parser.entries()[1]
    with pytest.raises(KfnError):
        parser.extract(entry)


def test_songini_line_break():
    songini = "Sync0=100,200,300,400\nText0=one two three\nText1=four\n"
    assert songini_to_lrc(songini) == (
        "[0:01.00]one [0:02.00]two [0:03.00]three \n[0:04.00]four"
    )


def test_songini_unsorted_syncs_are_sorted():
    songini = "Sync0=500,100\nText0=late early\n"
    lrc = songini_to_lrc(songini)
    assert lrc.index("early") < lrc.index("late")


def test_songini_text_without_sync_is_dropped():
    lrc = songini_to_lrc("Sync0=100\nText0=kept dropped\n")
    assert "kept" in lrc
    assert "dropped" not in lrc


def test_songini_empty():
    assert songini_to_lrc("") == ""
    assert songini_to_lrc("[General]\nTitle=Song\n") == ""