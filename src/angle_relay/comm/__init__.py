"""
Communication layer - secure framing and command downlinks.
"""

from .downlink import DatagramDownlink, Downlink, SocketDownlink
from .framing import FrameCodec, SignedFrameCodec

__all__ = [
    "DatagramDownlink",
    "Downlink",
    "SocketDownlink",
    "FrameCodec",
    "SignedFrameCodec",
]
