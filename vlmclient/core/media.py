"""
VLM value model.

Immutable descriptors for everything the VLM command set talks about: media
definitions, their input queue, module options and the stream output chain.
Each class renders itself (``str()``) in the exact syntax VLC expects on the
command line, so the command builders can simply interpolate them.

Output chain syntax:
    #module1{key=value,key=value}:module2{key=value}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Characters that would end a command line early
_LINE_BREAKS = ("\r", "\n")


def _check_single_line(kind: str, value: str | None) -> None:
    if value is not None and any(c in value for c in _LINE_BREAKS):
        raise ValueError(f"{kind} must not contain line breaks: {value!r}")


class MediaType(Enum):
    """Kinds of media known to VLM."""

    BROADCAST = "broadcast"
    VOD = "vod"
    SCHEDULE = "schedule"


@dataclass(frozen=True, slots=True)
class VlmInput:
    """A playable source queued on a media (file path or MRL)."""

    path: str

    def __post_init__(self) -> None:
        _check_single_line("Input path", self.path)

    @property
    def file(self) -> Path:
        """The input as a filesystem path."""
        return Path(self.path)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class VlmOption:
    """A module option, sent as ``name`` or ``name=value``."""

    name: str
    value: str | None = None

    def __post_init__(self) -> None:
        _check_single_line("Option name", self.name)
        _check_single_line("Option value", self.value)

    def __str__(self) -> str:
        if self.value is None:
            return self.name
        return f"{self.name}={self.value}"


@dataclass(frozen=True, slots=True)
class VlmProperty:
    """A single ``key=value`` pair inside an output module."""

    name: str
    value: str

    def __post_init__(self) -> None:
        _check_single_line("Property name", self.name)
        _check_single_line("Property value", self.value)

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


@dataclass(frozen=True, slots=True)
class VlmModule:
    """One stream output module with its ordered properties."""

    name: str
    properties: tuple[VlmProperty, ...] = ()

    def __post_init__(self) -> None:
        _check_single_line("Module name", self.name)

    def __str__(self) -> str:
        if not self.properties:
            return self.name
        return "%s{%s}" % (self.name, ",".join(str(p) for p in self.properties))


@dataclass(frozen=True, slots=True)
class VlmOutput:
    """
    A stream output chain (``#gather:std{access=http,mux=ts,dst=:8080}``).

    Use ``VlmOutput.Builder`` for the fluent form:

        VlmOutput.Builder().module("gather").module("std").property("access", "http").build()
    """

    modules: tuple[VlmModule, ...] = ()

    def __str__(self) -> str:
        return "#" + ":".join(str(m) for m in self.modules)

    class Builder:
        """Fluent builder; every ``module()`` call closes the previous module."""

        def __init__(self) -> None:
            self._modules: list[VlmModule] = []
            self._current_name: str | None = None
            self._current_properties: list[VlmProperty] = []

        def module(self, name: str) -> VlmOutput.Builder:
            _check_single_line("Module name", name)
            self._close_module()
            self._current_name = name
            self._current_properties = []
            return self

        def property(self, name: str, value: str) -> VlmOutput.Builder:
            if self._current_name is None:
                raise ValueError("property() called before module()")
            self._current_properties.append(VlmProperty(name, value))
            return self

        def build(self) -> VlmOutput:
            self._close_module()
            return VlmOutput(tuple(self._modules))

        def _close_module(self) -> None:
            if self._current_name is not None:
                self._modules.append(
                    VlmModule(self._current_name, tuple(self._current_properties))
                )
            self._current_name = None
            self._current_properties = []


@dataclass(frozen=True, slots=True)
class VlmMedia:
    """
    A named VLM media (broadcast, VOD or schedule).

    Identity is the name alone: two descriptors with the same name refer to
    the same media on the server, whatever their configuration.
    """

    name: str
    type: MediaType = field(default=MediaType.BROADCAST, compare=False)
    enabled: bool = field(default=True, compare=False)
    output: VlmOutput | None = field(default=None, compare=False)
    options: tuple[VlmOption, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Media name must not be empty")
        if any(c.isspace() for c in self.name):
            raise ValueError(f"Media name must not contain whitespace: {self.name!r}")
        # Accept any iterable of options but store an immutable tuple
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))

    def __str__(self) -> str:
        return (
            f"[name={self.name}, type={self.type.value}, enabled={self.enabled}, "
            f"output={self.output}]"
        )
