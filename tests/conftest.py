"""
Shared fixtures for the vlmclient tests.

Provides sample ``show`` dumps and an in-process fake of VLC's telnet
interface listening on a random local port.
"""

import asyncio
from collections.abc import AsyncIterator

import pytest

PASSWORD = "secret"

MEDIA_NAME = "channel42"
INPUT_PATH_1 = "/home/myself/films/film1.avi"
INPUT_PATH_2 = "/home/myself/films/film2.avi"
ITEM_LENGTH_MS = 669000000
POSITION = 0.021375
PLAYLIST_INDEX = 1

BANNER = b"VLC media player 3.0.20 Vetinari\r\nPassword: \xff\xfb\x01"
WELCOME = b"\xff\xfc\x01\r\nWelcome, Master\r\n> "
WRONG_PASSWORD = b"\r\nWrong password\r\nPassword: "


def build_show_dump(
    loop: str = "yes",
    inputs: tuple[str, ...] = (INPUT_PATH_1, INPUT_PATH_2),
    playing: bool = True,
    position: str = str(POSITION),
    length: str = str(ITEM_LENGTH_MS),
    playlist_index: str = str(PLAYLIST_INDEX),
    newline: str = "\n",
) -> str:
    """Build a ``show <media>`` response the way VLC formats it."""
    lines = [
        "show",
        "    channel1",
        "        type : broadcast",
        "        enabled : yes",
        f"        loop : {loop}",
        "        inputs",
    ]
    lines += [f"            {i} : {path}" for i, path in enumerate(inputs, start=1)]
    lines += [
        "        output : #gather:standard{access=http,mux=ps,dst=:8080/channel1}",
        "        options",
        "            sout-keep",
    ]
    if playing:
        lines += [
            "        instances",
            "            instance",
            "                name : default",
            "                state : playing",
            f"                position : {position}",
            "                time : 14300000",
            f"                length : {length}",
            "                rate : 1.000000",
            "                title : 0",
            "                chapter : 0",
            "                can-seek : 1",
            f"                playlistindex : {playlist_index}",
        ]
    return newline.join(lines)


class FakeVlcServer:
    """
    Minimal stand-in for ``vlc --intf telnet``.

    Greets with the password prompt, checks the password line and then answers
    each command line with the scripted response followed by the prompt.
    """

    def __init__(self, password: str = PASSWORD) -> None:
        self.password = password
        self.responses: dict[str, str] = {}
        self.commands: list[str] = []
        self.received_password: bytes | None = None
        self.port = 0
        self._server: asyncio.Server | None = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, host="127.0.0.1", port=0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            writer.write(BANNER)
            await writer.drain()

            while True:
                line = await reader.readline()
                if not line:
                    return
                self.received_password = line.rstrip(b"\r\n")
                if self.received_password == self.password.encode():
                    writer.write(WELCOME)
                    await writer.drain()
                    break
                writer.write(WRONG_PASSWORD)
                await writer.drain()

            while True:
                line = await reader.readline()
                if not line:
                    return
                command = line.decode().rstrip("\r\n")
                self.commands.append(command)
                response = self.responses.get(command, "")
                text = response.replace("\n", "\r\n")
                writer.write(f"{text}\r\n> ".encode())
                await writer.drain()
        except (ConnectionError, asyncio.CancelledError):
            pass
        finally:
            writer.close()


@pytest.fixture
async def vlc_server() -> AsyncIterator[FakeVlcServer]:
    """Start a fake VLC telnet interface on a random local port."""
    server = FakeVlcServer()
    await server.start()
    yield server
    await server.stop()
