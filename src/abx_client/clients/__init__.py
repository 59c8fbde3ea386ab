"""Transport clients for the ABX exchange server."""

from .channel import Channel, ChannelFactory

__all__ = ["Channel", "ChannelFactory"]
