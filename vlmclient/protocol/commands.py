"""
VLM command builders (client → VLC).

Each builder returns one command line, without the trailing newline, in the
syntax of VLC's VLM interface:

    new <name> <broadcast|vod|schedule> <enabled|disabled>
    del <name>
    setup <name> input <path>
    setup <name> inputdel all
    setup <name> inputdeln <n>
    setup <name> output <#chain>
    setup <name> option <name[=value]>
    control <name> play [<index>]
    control <name> seek <0..1> | <ms>ms
    control <name> stop
    show <name>
    loop <name> | unloop <name>

Reference: src/input/vlmshell.c from VLC
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

from vlmclient.core.media import VlmInput, VlmMedia, VlmOption, VlmOutput

ENABLED = "enabled"
DISABLED = "disabled"

# Line terminator appended by the session when missing
LINE_TERMINATOR = "\n"


def _check_name(name: str) -> str:
    if not name or any(c.isspace() for c in name):
        raise ValueError(f"Invalid media name: {name!r}")
    return name


def build_new(media: VlmMedia) -> str:
    """Build the ``new`` command creating a media from its descriptor."""
    state = ENABLED if media.enabled else DISABLED
    return f"new {media.name} {media.type.value} {state}"


def build_del(name: str) -> str:
    """Build the ``del`` command removing a media."""
    return f"del {_check_name(name)}"


def build_setup_input(name: str, input: VlmInput) -> str:
    """Build the command appending an item to a media's input queue."""
    return f"setup {_check_name(name)} input {input}"


def build_setup_inputdel_all(name: str) -> str:
    """Build the command clearing a media's input queue."""
    return f"setup {_check_name(name)} inputdel all"


def build_setup_inputdeln(name: str, index: int) -> str:
    """
    Build the command removing one queued input.

    Args:
        name: Media name.
        index: Position in the queue, starting from 1 (as listed by ``show``).
    """
    if index < 1:
        raise ValueError(f"Playlist index must be >= 1, got {index}")
    return f"setup {_check_name(name)} inputdeln {index:d}"


def build_setup_output(name: str, output: VlmOutput) -> str:
    """Build the command setting a media's stream output chain."""
    return f"setup {_check_name(name)} output {output}"


def build_setup_option(name: str, option: VlmOption) -> str:
    """Build the command setting one module option on a media."""
    return f"setup {_check_name(name)} option {option}"


def build_play(name: str, index: int | None = None) -> str:
    """
    Build a ``control play`` command.

    Args:
        name: Media name.
        index: Optional playlist item to start at (1-based).
    """
    if index is None:
        return f"control {_check_name(name)} play"
    if index < 1:
        raise ValueError(f"Playlist index must be >= 1, got {index}")
    return f"control {_check_name(name)} play {index:d}"


def build_seek_percentage(name: str, position: float) -> str:
    """Build a relative seek; ``position`` is a fraction between 0 and 1."""
    if not 0.0 <= position <= 1.0:
        raise ValueError(f"Relative position must be within 0..1, got {position}")
    return f"control {_check_name(name)} seek {position:f}"


def build_seek_duration(name: str, position: timedelta) -> str:
    """Build an absolute seek to ``position`` from the start of the item."""
    millis = position // timedelta(milliseconds=1)
    if millis < 0:
        raise ValueError(f"Absolute position must not be negative, got {position}")
    return f"control {_check_name(name)} seek {millis:d}ms"


def build_seek(name: str, position: float | timedelta) -> str:
    """Build an absolute seek for a ``timedelta``, a relative one otherwise."""
    if isinstance(position, timedelta):
        return build_seek_duration(name, position)
    return build_seek_percentage(name, position)


def build_stop(name: str) -> str:
    """Build a ``control stop`` command."""
    return f"control {_check_name(name)} stop"


def build_show(name: str) -> str:
    """Build the ``show`` command returning a media's status dump."""
    return f"show {_check_name(name)}"


def build_loop(name: str) -> str:
    return f"loop {_check_name(name)}"


def build_unloop(name: str) -> str:
    return f"unloop {_check_name(name)}"


# Operation name -> builder, for callers that dispatch on the VLM verb
COMMAND_BUILDERS: dict[str, Callable[..., str]] = {
    "new": build_new,
    "del": build_del,
    "input": build_setup_input,
    "inputdel": build_setup_inputdel_all,
    "inputdeln": build_setup_inputdeln,
    "output": build_setup_output,
    "option": build_setup_option,
    "play": build_play,
    "seek": build_seek,
    "stop": build_stop,
    "show": build_show,
    "loop": build_loop,
    "unloop": build_unloop,
}


def format_command(operation: str, *args: object) -> str:
    """
    Render a command line by operation name.

    Args:
        operation: One of the keys of ``COMMAND_BUILDERS`` (e.g. "del", "play").
        *args: Arguments of the matching ``build_*`` function.

    Returns:
        The command line without its terminator.

    Raises:
        ValueError: If the operation is unknown or its arguments are invalid.
    """
    builder = COMMAND_BUILDERS.get(operation)
    if builder is None:
        raise ValueError(f"Unknown VLM operation: {operation}")
    return builder(*args)
