"""
Parser for the VLM ``show <media>`` status dump.

VLC answers ``show`` with an indentation-structured block, four spaces per
level:

    show
        channel1
            type : broadcast
            enabled : yes
            loop : yes
            inputs
                1 : /home/myself/films/film1.avi
                2 : /home/myself/films/film2.avi
            output : #gather:std{access=http,mux=ps,dst=:8080/channel1}
            options
                sout-keep
            instances
                instance
                    name : default
                    state : playing
                    position : 0.021375
                    time : 14300000
                    length : 669000000
                    rate : 1.000000
                    title : 0
                    chapter : 0
                    can-seek : 1
                    playlistindex : 1

Only the fields the client needs are extracted: the loop flag, the input
queue and the position/length/playlist index of the instance named
``default``. A stopped media has no ``instances`` block; every extractor
then reports its own "absent" value instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta

from vlmclient.core.media import VlmInput

# Returned when no default instance reports a position / playlist index
NO_POSITION = -1.0
NO_PLAYLIST_INDEX = -1

# Media-level fields are indented by 8 spaces, their children by 12
_LOOP = re.compile(r"^ {8}loop : (yes|no)[ \t]*$", re.MULTILINE)
_INPUTS_BLOCK = re.compile(r"^ {8}inputs[ \t]*\n((?: {12}.*(?:\n|$))*)", re.MULTILINE)
_INPUT_LINE = re.compile(r"^ {12}\d+ : (.*?)[ \t]*$", re.MULTILINE)
_INSTANCES_BLOCK = re.compile(r"^ {8}instances[ \t]*\n((?: {12}.*(?:\n|$))*)", re.MULTILINE)
_INSTANCE_HEADER = re.compile(r"^ {12}instance[ \t]*$", re.MULTILINE)

# Instance fields are indented by 16 spaces
_INSTANCE_NAME_DEFAULT = re.compile(r"^ {16}name : default[ \t]*$", re.MULTILINE)
_POSITION = re.compile(r"^ {16}position : (\d+(?:\.\d+)?)[ \t]*$", re.MULTILINE)
_LENGTH = re.compile(r"^ {16}length : (\d+)[ \t]*$", re.MULTILINE)
_PLAYLIST_INDEX = re.compile(r"^ {16}playlistindex : (\d+)[ \t]*$", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class MediaStatus:
    """Everything the client reads from one status dump."""

    loop: bool = False
    inputs: tuple[VlmInput, ...] = ()
    position: float = NO_POSITION
    length: timedelta | None = None
    playlist_index: int = NO_PLAYLIST_INDEX

    @property
    def has_instance(self) -> bool:
        """True when the dump carried a running default instance."""
        return self.position >= 0 or self.playlist_index >= 0 or self.length is not None


def _normalize(dump: str) -> str:
    # VLC's telnet interface terminates lines with CRLF
    return dump.replace("\r\n", "\n")


def _default_instance(dump: str) -> str | None:
    """Return the text of the instance named ``default``, if any."""
    block = _INSTANCES_BLOCK.search(dump)
    if block is None:
        return None

    # Everything before the first header is empty; each chunk after it is one instance
    for chunk in _INSTANCE_HEADER.split(block.group(1))[1:]:
        if _INSTANCE_NAME_DEFAULT.search(chunk):
            return chunk
    return None


def parse_loop_state(dump: str) -> bool:
    """Return True if the media loops (``loop : yes``), False otherwise."""
    match = _LOOP.search(_normalize(dump))
    return match is not None and match.group(1) == "yes"


def parse_inputs(dump: str) -> list[VlmInput]:
    """Return the queued inputs in server order, or an empty list."""
    block = _INPUTS_BLOCK.search(_normalize(dump))
    if block is None:
        return []
    return [VlmInput(m.group(1)) for m in _INPUT_LINE.finditer(block.group(1))]


def parse_position(dump: str) -> float:
    """
    Return the relative position (0..1) of the default instance.

    Returns ``NO_POSITION`` (negative) when the media is not playing.
    """
    instance = _default_instance(_normalize(dump))
    if instance is None:
        return NO_POSITION
    match = _POSITION.search(instance)
    return float(match.group(1)) if match else NO_POSITION


def parse_length(dump: str) -> timedelta | None:
    """Return the length of the current item, or None when unknown."""
    instance = _default_instance(_normalize(dump))
    if instance is None:
        return None
    match = _LENGTH.search(instance)
    return timedelta(milliseconds=int(match.group(1))) if match else None


def parse_playlist_index(dump: str) -> int:
    """
    Return the 1-based playlist index of the default instance.

    Returns ``NO_PLAYLIST_INDEX`` (negative) when the media is not playing.
    """
    instance = _default_instance(_normalize(dump))
    if instance is None:
        return NO_PLAYLIST_INDEX
    match = _PLAYLIST_INDEX.search(instance)
    return int(match.group(1)) if match else NO_PLAYLIST_INDEX


def parse_media_status(dump: str) -> MediaStatus:
    """Parse every supported field of a dump in one pass."""
    dump = _normalize(dump)
    return MediaStatus(
        loop=parse_loop_state(dump),
        inputs=tuple(parse_inputs(dump)),
        position=parse_position(dump),
        length=parse_length(dump),
        playlist_index=parse_playlist_index(dump),
    )
