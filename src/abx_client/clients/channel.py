"""TCP channel adapter for the ABX exchange server."""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..codec import PACKET_SIZE
from ..config.settings import RetryConfig, ServerConfig
from ..exceptions import ChannelError
from ..utils.retry import exponential_backoff

logger = logging.getLogger(__name__)


class Channel:
    """
    One request/response conversation with the exchange server.

    The server answers a single request per connection, so a Channel is opened
    for one request and closed as soon as the response has been consumed.
    Use it as an async context manager to guarantee the socket is released on
    every exit path.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        receive_timeout: Optional[float] = None,
    ):
        self._reader = reader
        self._writer = writer
        self._receive_timeout = receive_timeout
        self._closed = False
        self.bytes_sent = 0
        self.frames_received = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, data: bytes) -> None:
        """Write a request frame and flush it to the socket."""
        if self._closed:
            raise ChannelError("Cannot send on a closed channel")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            raise ChannelError(f"Send failed: {e}", details={"bytes": len(data)})

        self.bytes_sent += len(data)
        logger.debug(f"Sent {len(data)} bytes: {data.hex()}")

    async def receive(self) -> bytes:
        """
        Read one response frame.

        Returns:
            The 17 frame bytes, or b"" when the peer closed the connection
            cleanly before a new frame started

        Raises:
            ChannelError: On transport failure, timeout, or a frame cut short by EOF
        """
        if self._closed:
            raise ChannelError("Cannot receive on a closed channel")

        try:
            read = self._reader.readexactly(PACKET_SIZE)
            if self._receive_timeout is not None:
                data = await asyncio.wait_for(read, timeout=self._receive_timeout)
            else:
                data = await read
        except asyncio.IncompleteReadError as e:
            if not e.partial:
                logger.info("Connection closed by server.")
                return b""
            raise ChannelError(
                f"Connection closed mid-frame after {len(e.partial)} of {PACKET_SIZE} bytes",
                details={"partial_hex": e.partial.hex()},
            )
        except asyncio.TimeoutError:
            raise ChannelError(
                f"No data received within {self._receive_timeout}s",
                details={"timeout_seconds": self._receive_timeout},
            )
        except (ConnectionError, OSError) as e:
            logger.error(f"Receive error: {e}")
            raise ChannelError(f"Receive failed: {e}")

        self.frames_received += 1
        return data

    async def close(self) -> None:
        """Close the underlying socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Ignoring error while closing channel: {e}")

    async def __aenter__(self) -> "Channel":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class ChannelFactory:
    """Opens fresh channels to the configured exchange server."""

    def __init__(self, server: ServerConfig, retry: Optional[RetryConfig] = None):
        self.server = server
        self.retry = retry or RetryConfig(max_attempts=1)

        self.stats = {
            'connections_opened': 0,
            'connect_failures': 0,
        }

    async def open(self) -> Channel:
        """
        Connect to the server, retrying with backoff per the retry config.

        Raises:
            ChannelError: If no connection could be established
        """
        channel = await exponential_backoff(
            self._connect,
            max_attempts=self.retry.max_attempts,
            initial_delay=self.retry.initial_backoff_seconds,
            max_delay=self.retry.max_backoff_seconds,
            backoff_factor=self.retry.backoff_multiplier,
            jitter=self.retry.jitter,
            exceptions=(ChannelError,),
        )
        self.stats['connections_opened'] += 1
        return channel

    async def _connect(self) -> Channel:
        address = f"{self.server.host}:{self.server.port}"
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.server.host, self.server.port),
                timeout=self.server.connect_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.stats['connect_failures'] += 1
            raise ChannelError(
                f"Timed out connecting to {address}",
                details={"address": address},
            )
        except (ConnectionError, OSError) as e:
            self.stats['connect_failures'] += 1
            raise ChannelError(
                f"Failed to connect to {address}: {e}",
                details={"address": address},
            )

        logger.debug(f"Connected to server at {address}")
        return Channel(reader, writer, receive_timeout=self.server.receive_timeout_seconds)

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
