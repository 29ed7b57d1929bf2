"""
vlmclient - A Python client for VLC's VLM telnet interface.

vlmclient logs in to a running VLC instance, manages broadcast/VOD/schedule
media with VLM line commands and reads their playback state back from the
``show`` status dump.
"""

__version__ = "0.1.0"
__author__ = "vlmclient Contributors"
__license__ = "GPL-2.0"

from vlmclient.manager import VlmManager
from vlmclient.protocol.session import VlmConnectionError

__all__ = ["VlmConnectionError", "VlmManager", "__version__"]
