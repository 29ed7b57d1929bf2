"""
High-level VLM operations.

``VlmManager`` combines the command builders, the session transport and the
status parser: every operation renders one command line, sends it, waits for
the command prompt and, for read operations, parses the ``show`` dump that
came back.

Example:

    manager = VlmManager("localhost", 4212)
    async with manager.connected(bytearray(b"secret")):
        await manager.create_media(media)
        await manager.add_input_item(media.name, VlmInput("/films/film1.avi"))
        await manager.play(media.name)
        position = await manager.read_current_position(media.name)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from vlmclient.config import ClientConfig, get_client_config
from vlmclient.core.media import VlmInput, VlmMedia, VlmOption, VlmOutput
from vlmclient.protocol import commands
from vlmclient.protocol.session import NORMAL_PROMPT, VlmConnectionError, VlmSession
from vlmclient.protocol.status import (
    MediaStatus,
    parse_inputs,
    parse_length,
    parse_loop_state,
    parse_media_status,
    parse_playlist_index,
    parse_position,
)

logger = logging.getLogger(__name__)


class VlmManager:
    """
    Client API for the VLM interface of a running VLC instance.

    Operations are coroutines and must be awaited one after the other: the
    server's answers are not tagged, so a second command sent before the
    first one's prompt arrived would corrupt the exchange. Share one manager
    between tasks only behind an external lock.

    Any ``VlmConnectionError`` leaves the connection in an undefined state;
    disconnect and create a new manager.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        config: ClientConfig | None = None,
        session: VlmSession | None = None,
    ) -> None:
        """
        Prepare a manager without connecting.

        Args:
            host: Host VLC runs on (defaults to the configured host).
            port: Telnet port of VLC (defaults to the configured port).
            config: Connection settings; the global config when omitted.
            session: Pre-built session to use instead of creating one.
        """
        if session is None:
            config = config or get_client_config()
            session = VlmSession(
                host if host is not None else config.host,
                port if port is not None else config.port,
                **config.session_kwargs(),
            )
        self._session = session

    @property
    def session(self) -> VlmSession:
        return self._session

    @property
    def host(self) -> str:
        return self._session.host

    @property
    def port(self) -> int:
        return self._session.port

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self, password: bytearray | bytes | str) -> None:
        """
        Open the telnet connection and log in.

        Args:
            password: Telnet password; a ``bytearray`` is wiped after sending.
        """
        await self._session.connect(password)

    async def disconnect(self) -> None:
        """Close the telnet connection."""
        await self._session.disconnect()

    @asynccontextmanager
    async def connected(self, password: bytearray | bytes | str) -> AsyncIterator[VlmManager]:
        """
        Connect for the duration of an ``async with`` block, always disconnecting.

        If the block (or the login) fails, a failure to disconnect is logged
        and the original error propagates.
        """
        try:
            await self.connect(password)
            yield self
        except BaseException:
            try:
                await self.disconnect()
            except VlmConnectionError as e:
                logger.warning("Error while disconnecting from %s:%d: %s", self.host, self.port, e)
            raise
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Media management
    # -------------------------------------------------------------------------

    async def create_media(self, media: VlmMedia) -> None:
        """
        Create a media, replacing any existing media of the same name.

        The media's output chain and options are set up right after creation.
        """
        await self.delete_media(media.name)
        await self._execute(commands.build_new(media))
        if media.output is not None:
            await self.setup_output(media.name, media.output)
        for option in media.options:
            await self.setup_option(media.name, option)
        logger.debug("Created new media %s", media)

    async def delete_media(self, name: str) -> None:
        """Delete a media; a playing media stops streaming immediately."""
        await self._execute(commands.build_del(name))
        logger.debug("Deleted media %s", name)

    async def add_input_item(self, name: str, input: VlmInput) -> None:
        """Append an item to the media's input queue."""
        await self._execute(commands.build_setup_input(name, input))
        logger.debug("Added input %s to media %s", input, name)

    async def clear_input(self, name: str) -> None:
        """
        Remove every item from the media's input queue.

        An item currently playing continues until its end.
        """
        await self._execute(commands.build_setup_inputdel_all(name))
        logger.debug("Cleared input for media %s", name)

    async def remove_input_item(self, name: str, index: int) -> None:
        """Remove the queued item at ``index`` (1-based)."""
        await self._execute(commands.build_setup_inputdeln(name, index))
        logger.debug("Removed input %d of media %s", index, name)

    async def setup_output(self, name: str, output: VlmOutput) -> None:
        await self._execute(commands.build_setup_output(name, output))
        logger.debug("Set output of media %s to %s", name, output)

    async def setup_option(self, name: str, option: VlmOption) -> None:
        await self._execute(commands.build_setup_option(name, option))
        logger.debug("Set option %s on media %s", option, name)

    # -------------------------------------------------------------------------
    # Playback control
    # -------------------------------------------------------------------------

    async def play(self, name: str, index: int | None = None) -> None:
        """
        Start playing a media, optionally at a given playlist item (1-based).

        Has no effect if the media is already playing that item.
        """
        await self._execute(commands.build_play(name, index))
        if index is None:
            logger.debug("Media %s is now playing", name)
        else:
            logger.debug("Media %s is now playing item %d", name, index)

    async def stop(self, name: str) -> None:
        await self._execute(commands.build_stop(name))
        logger.debug("Stopped media %s", name)

    async def seek(self, name: str, position: float | timedelta) -> None:
        """
        Move playback of the current item.

        Args:
            name: Media name.
            position: A ``timedelta`` from the start of the item, or a
                relative position between 0 and 1.
        """
        await self._execute(commands.build_seek(name, position))
        if isinstance(position, timedelta):
            logger.debug("Media %s seeked to absolute position %s", name, position)
        else:
            logger.debug("Media %s seeked to relative position %.2f %%", name, position * 100)

    async def loop(self, name: str) -> None:
        await self._execute(commands.build_loop(name))
        logger.debug("Media %s is now looping", name)

    async def unloop(self, name: str) -> None:
        await self._execute(commands.build_unloop(name))
        logger.debug("Media %s is not looping anymore", name)

    async def toggle_loop_state(self, name: str) -> bool:
        """
        Start looping if the media does not loop, stop looping otherwise.

        Returns:
            The new loop state.
        """
        if await self.read_loop_state(name):
            await self.unloop(name)
            return False
        await self.loop(name)
        return True

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def read_loop_state(self, name: str) -> bool:
        """Return True if the media loops; False if not or if unknown."""
        result = parse_loop_state(await self._show(name))
        logger.debug("Loop state of media %s is %s", name, result)
        return result

    async def read_playlist_items(self, name: str) -> list[VlmInput]:
        """Return the queued inputs in server order (empty if unknown)."""
        result = parse_inputs(await self._show(name))
        logger.debug("Input of media %s is %s", name, result)
        return result

    async def read_current_position(self, name: str) -> float:
        """
        Return the relative position (0..1) in the current item.

        A negative value means the media is stopped or the position is unknown.
        """
        result = parse_position(await self._show(name))
        logger.debug("Position of currently played item on media %s is %s", name, result)
        return result

    async def read_current_length(self, name: str) -> timedelta | None:
        """Return the length of the current item, or None when stopped/unknown."""
        result = parse_length(await self._show(name))
        logger.debug("Length of currently played item on media %s is %s", name, result)
        return result

    async def read_playlist_index(self, name: str) -> int:
        """
        Return the 1-based index of the item being played.

        A negative value means the media is stopped or the index is unknown.
        """
        result = parse_playlist_index(await self._show(name))
        logger.debug("Media %s is currently playing item at index %s", name, result)
        return result

    async def read_status(self, name: str) -> MediaStatus:
        """Read loop state, inputs, position, length and index with one ``show``."""
        result = parse_media_status(await self._show(name))
        logger.debug("Status of media %s is %s", name, result)
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _execute(self, command: str) -> str:
        """Send one command and return its response text (without the prompt)."""
        match = await self._session.exchange(command, NORMAL_PROMPT)
        return self._session.decode(match.group("body"))

    async def _show(self, name: str) -> str:
        return await self._execute(commands.build_show(name))
