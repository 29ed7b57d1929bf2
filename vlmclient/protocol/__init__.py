"""
Protocol implementation for vlmclient.

This package contains the VLM telnet protocol handling:
- commands: builders for the VLM command lines
- session: the telnet connection and prompt matching
- status: parser for the ``show`` status dump
"""

from vlmclient.protocol.session import SessionState, VlmConnectionError, VlmSession
from vlmclient.protocol.status import MediaStatus

__all__ = ["MediaStatus", "SessionState", "VlmConnectionError", "VlmSession"]
