"""Frame source implementations."""

from .replay import ReplayFrameSource
from .udp_bridge import UdpBridgeFrameSource

__all__ = [
    "ReplayFrameSource",
    "UdpBridgeFrameSource",
]
