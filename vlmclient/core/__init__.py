"""
Core value types for vlmclient.

This package contains the immutable descriptors exchanged with VLM:
- media: media definitions, inputs, options and output chains
"""

from vlmclient.core.media import (
    MediaType,
    VlmInput,
    VlmMedia,
    VlmModule,
    VlmOption,
    VlmOutput,
    VlmProperty,
)

__all__ = [
    "MediaType",
    "VlmInput",
    "VlmMedia",
    "VlmModule",
    "VlmOption",
    "VlmOutput",
    "VlmProperty",
]
