"""
VLM telnet session transport.

This module owns the single TCP connection to VLC's telnet interface
(default port 4212) and provides the primitive every higher level
operation is built on: write one command line, then read until an expected
pattern shows up in the accumulated input.

Protocol Format:
    The server greets with a banner ending in ``Password: ``. Once the
    password line is accepted it answers every command with the command's
    response text followed by the prompt ``> ``:

        VLC media player 3.0.20 Vetinari\\r\\n
        Password: <client sends secret\\n>
        \\r\\nWelcome, Master\\r\\n> <client sends show channel1\\n>
        show\\r\\n    channel1\\r\\n        type : broadcast ... \\r\\n>

    Telnet option negotiation (IAC WILL ECHO around the password) is
    filtered out of the input before matching.

Responses carry no request identifiers, so exactly one command may be in
flight per session. The session does no locking of its own.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Any

from vlmclient.protocol.commands import LINE_TERMINATOR

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4212

# Maximum bytes requested from the stream per read
READ_CHUNK_SIZE = 1024

# Bytes searched again before each new chunk; longer than any prompt
PROMPT_OVERLAP = 16

# Largest incomplete telnet sequence held back between reads
MAX_PENDING_TELNET = 512

# Anything (non-greedy) followed by the password prompt
PASSWORD_PROMPT = re.compile(rb"(?P<body>.*?)Password: ", re.DOTALL)

# Anything (non-greedy) followed by a line break and the command prompt;
# "body" is the response text without its final line break
NORMAL_PROMPT = re.compile(rb"(?P<body>.*?)(?:\r?\n|\A)> ", re.DOTALL)

# Whichever prompt comes first; only used during login
ANY_PROMPT = re.compile(
    rb"(?P<body>.*?)(?:(?P<password>Password: )|(?P<normal>(?:\r?\n|\A)> ))",
    re.DOTALL,
)

# Telnet protocol bytes (RFC 854)
IAC = 0xFF
SB = 0xFA
SE = 0xF0
WILL = 0xFB
WONT = 0xFC
DO = 0xFD
DONT = 0xFE


class VlmConnectionError(ConnectionError):
    """
    I/O with the VLC telnet interface failed.

    After this error the session is in an undefined state: the last command
    may have been executed fully, partially or not at all. Discard the session
    and connect a new one.

    Attributes:
        cause: The underlying exception, if any (also chained as __cause__).
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SessionState(Enum):
    """Transport states of a session."""

    DISCONNECTED = "disconnected"
    AWAITING_PASSWORD = "awaiting_password"
    AUTHENTICATED = "authenticated"


def strip_telnet_commands(data: bytes) -> tuple[bytes, bytes]:
    """
    Remove telnet command sequences from received bytes.

    Args:
        data: Raw bytes, possibly ending in the middle of a sequence.

    Returns:
        Tuple of (payload bytes, incomplete trailing sequence to prepend to
        the next read).
    """
    if IAC not in data:
        return data, b""

    out = bytearray()
    i = 0
    length = len(data)
    while i < length:
        byte = data[i]
        if byte != IAC:
            out.append(byte)
            i += 1
            continue

        if i + 1 >= length:
            return bytes(out), data[i:]

        command = data[i + 1]
        if command == IAC:
            # Escaped 0xFF data byte
            out.append(IAC)
            i += 2
        elif command in (WILL, WONT, DO, DONT):
            if i + 2 >= length:
                return bytes(out), data[i:]
            i += 3
        elif command == SB:
            end = data.find(bytes((IAC, SE)), i + 2)
            if end < 0:
                return bytes(out), data[i:]
            i = end + 2
        else:
            i += 2

    return bytes(out), b""


class VlmSession:
    """
    One connection to VLC's telnet interface.

    The session keeps everything received but not yet consumed in a growable
    buffer. ``wait_for_pattern`` appends to it until the pattern matches,
    then discards the buffer up to the end of the match; bytes after the
    match stay for the next call.

    Attributes:
        host: Host name VLC is running on.
        port: Port of the telnet interface.
        read_timeout: Seconds to wait for each read, None to block forever.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        read_timeout: float | None = None,
        read_chunk_size: int = READ_CHUNK_SIZE,
        encoding: str = "utf-8",
    ) -> None:
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self.read_chunk_size = read_chunk_size
        self.encoding = encoding

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._state = SessionState.DISCONNECTED
        self._buffer = bytearray()
        self._pending_telnet = b""

        logger.debug("Created session for %s:%d", host, port)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """True once the login handshake has completed."""
        return self._state == SessionState.AUTHENTICATED

    @property
    def buffer(self) -> bytes:
        """Received bytes not yet consumed by a match."""
        return bytes(self._buffer)

    async def __aenter__(self) -> VlmSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self, password: bytearray | bytes | str) -> None:
        """
        Open the connection and log in.

        Args:
            password: Telnet password. A ``bytearray`` is wiped (zeroed) once
                it has been sent; ``bytes``/``str`` cannot be wiped in place.

        Raises:
            VlmConnectionError: If connecting, reading or writing fails, or
                the server asks for the password again. The session must be
                disconnected before it is reused.
        """
        self._buffer.clear()
        self._pending_telnet = b""

        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            logger.warning("Failed to connect to %s:%d: %s", self.host, self.port, e)
            raise VlmConnectionError(f"Cannot connect to {self.host}:{self.port}: {e}", e) from e

        self._state = SessionState.AWAITING_PASSWORD
        await self.wait_for_pattern(PASSWORD_PROMPT)
        await self.send_password(password)

        match = await self.wait_for_pattern(ANY_PROMPT)
        if match.group("password") is not None:
            logger.warning("Password rejected by %s:%d", self.host, self.port)
            raise VlmConnectionError(f"Authentication to {self.host}:{self.port} rejected")

        self._state = SessionState.AUTHENTICATED
        logger.debug("Connected successfully to %s:%d", self.host, self.port)

    async def disconnect(self) -> None:
        """
        Close the connection.

        The connection is released even when closing fails.

        Raises:
            VlmConnectionError: If closing the stream fails.
        """
        writer = self._writer
        self._reader = None
        self._writer = None
        self._state = SessionState.DISCONNECTED
        if writer is None:
            return

        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning("Error while disconnecting from %s:%d: %s", self.host, self.port, e)
            raise VlmConnectionError(f"Error closing connection to {self.host}:{self.port}", e) from e

        logger.debug("Disconnected from %s:%d", self.host, self.port)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    async def send_command(self, command: str) -> None:
        """
        Send a command line, appending the line terminator if missing.

        Raises:
            RuntimeError: If the session has not logged in.
            ValueError: If the command contains a line break before its end.
            VlmConnectionError: If writing fails.
        """
        if self._state != SessionState.AUTHENTICATED:
            raise RuntimeError(f"Cannot send command in state {self._state.value}")

        line = command.removesuffix(LINE_TERMINATOR)
        if "\r" in line or "\n" in line:
            raise ValueError(f"Command must be a single line: {line!r}")
        command = line + LINE_TERMINATOR

        writer = self._require_writer()
        try:
            writer.write(command.encode(self.encoding))
            await writer.drain()
        except OSError as e:
            logger.warning("Failed to send command %r: %s", command.rstrip(), e)
            raise VlmConnectionError(f"Failed to send command: {e}", e) from e

        logger.debug("Sent command: %s", command.rstrip())

    async def send_password(self, password: bytearray | bytes | str) -> None:
        """
        Send the password line one byte at a time and wipe it.

        Each byte of a ``bytearray`` credential is overwritten with zero right
        after it has been handed to the stream; whatever is left is zeroed
        even if writing fails.

        Raises:
            VlmConnectionError: If writing fails.
        """
        if isinstance(password, str):
            secret = bytearray(password.encode(self.encoding))
        elif isinstance(password, bytearray):
            secret = password
        else:
            secret = bytearray(password)

        try:
            writer = self._require_writer()
            for i in range(len(secret)):
                writer.write(bytes((secret[i],)))
                secret[i] = 0
            writer.write(LINE_TERMINATOR.encode("ascii"))
            await writer.drain()
        except VlmConnectionError:
            raise
        except OSError as e:
            logger.warning("Failed to send password to %s:%d: %s", self.host, self.port, e)
            raise VlmConnectionError(f"Failed to send password: {e}", e) from e
        finally:
            for i in range(len(secret)):
                secret[i] = 0

        logger.debug("Sent password to %s:%d", self.host, self.port)

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    async def wait_for_pattern(self, pattern: re.Pattern[bytes]) -> re.Match[bytes]:
        """
        Read until ``pattern`` is found in the accumulated input.

        The pattern is searched (not anchored) in everything received so far.
        After each read only the new bytes and the last ``PROMPT_OVERLAP``
        bytes before them are searched again, so a match may not end in more
        than ``PROMPT_OVERLAP`` bytes of fixed text (true for every prompt).
        On a match the buffer is discarded up to and including the end of the
        match; unconsumed bytes after it are kept for the next call.

        Returns:
            The match object, with offsets relative to the buffer as it was
            when the match was found.

        Raises:
            VlmConnectionError: If reading fails, the server closes the
                connection or ``read_timeout`` expires.
        """
        found = pattern.search(self._buffer) is not None
        while not found:
            start = max(0, len(self._buffer) - PROMPT_OVERLAP)
            self._buffer += await self._read_chunk()
            found = pattern.search(self._buffer, start) is not None

        # Search an immutable snapshot so the returned match survives trimming
        match = pattern.search(bytes(self._buffer))
        assert match is not None

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Received response:\n----------------\n%s\n----------------",
                self.decode(match.group(0)),
            )

        del self._buffer[: match.end()]
        return match

    async def exchange(
        self,
        command: str,
        pattern: re.Pattern[bytes] = NORMAL_PROMPT,
    ) -> re.Match[bytes]:
        """Send a command and wait for the response ending in ``pattern``."""
        await self.send_command(command)
        return await self.wait_for_pattern(pattern)

    def decode(self, data: bytes) -> str:
        """Decode received bytes with the session encoding."""
        return data.decode(self.encoding, errors="replace")

    async def _read_chunk(self) -> bytes:
        """Read the next chunk of payload bytes from the stream."""
        reader = self._require_reader()
        try:
            if self.read_timeout is None:
                data = await reader.read(self.read_chunk_size)
            else:
                data = await asyncio.wait_for(
                    reader.read(self.read_chunk_size),
                    timeout=self.read_timeout,
                )
        except asyncio.TimeoutError as e:
            logger.warning(
                "No response from %s:%d within %.1fs", self.host, self.port, self.read_timeout
            )
            raise VlmConnectionError(f"Timed out after {self.read_timeout}s waiting for VLC", e) from e
        except OSError as e:
            logger.warning("Failed to read from %s:%d: %s", self.host, self.port, e)
            raise VlmConnectionError(f"Failed to read from VLC: {e}", e) from e

        if not data:
            logger.warning("Connection closed by %s:%d", self.host, self.port)
            raise VlmConnectionError(f"Connection closed by {self.host}:{self.port}")

        payload, self._pending_telnet = strip_telnet_commands(self._pending_telnet + data)
        if len(self._pending_telnet) > MAX_PENDING_TELNET:
            logger.warning("Unterminated telnet subnegotiation from %s:%d", self.host, self.port)
            raise VlmConnectionError(
                f"Unterminated telnet subnegotiation longer than {MAX_PENDING_TELNET} bytes"
            )
        return payload

    def _require_reader(self) -> asyncio.StreamReader:
        if self._reader is None:
            raise VlmConnectionError("Session is not connected")
        return self._reader

    def _require_writer(self) -> asyncio.StreamWriter:
        if self._writer is None:
            raise VlmConnectionError("Session is not connected")
        return self._writer
