[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "karlyrics"
version = "4.1.0"
description = "Karaoke lyrics tooling: timed lyrics from KAR/MIDI and KaraFun KFN files, lyric structures and background events"
requires-python = ">=3.10"
keywords = ["karaoke", "lyrics", "midi", "kar", "kfn", "lrc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
    "Typing :: Typed",
]
dependencies = [
    "cryptography",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["karlyrics"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
