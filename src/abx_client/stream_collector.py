"""Primary "stream all" collection phase."""

import logging
from enum import Enum
from typing import Any, Dict

from .clients.channel import ChannelFactory
from .codec import CallType, decode_record, encode_request
from .exceptions import NoDataReceived
from .state import FeedState

logger = logging.getLogger(__name__)


class CollectorState(Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    STREAMING = "streaming"
    DONE = "done"


class StreamCollector:
    """
    Requests the full packet stream and decodes frames until the server closes.

    Any decode or transport failure propagates: a corrupt primary stream means
    record integrity cannot be assumed, so the run is aborted by the caller.
    """

    def __init__(self, channels: ChannelFactory):
        self.channels = channels
        self.state = CollectorState.IDLE

        self.stats = {
            'frames_received': 0,
            'records_streamed': 0,
        }

    async def collect(self, feed: FeedState) -> FeedState:
        """
        Run the stream phase, folding every decoded record into `feed`.

        Returns:
            The same FeedState with records, seen set and max_sequence_seen filled

        Raises:
            NoDataReceived: If the stream closed without a single record
            MalformedPacket: If any frame fails to decode
            ChannelError: On transport failure
        """
        channel = await self.channels.open()
        self.state = CollectorState.CONNECTED
        logger.info("Connected to server.")

        streamed = 0
        async with channel:
            await channel.send(encode_request(CallType.STREAM_ALL))
            logger.info(f"Sent request: CallType = {CallType.STREAM_ALL.value}, Sequence = 0")
            self.state = CollectorState.STREAMING

            while True:
                data = await channel.receive()
                if not data:
                    break

                self.stats['frames_received'] += 1
                record = decode_record(data)
                feed.add(record)
                feed.max_sequence_seen = record.sequence
                streamed += 1

        self.state = CollectorState.DONE
        self.stats['records_streamed'] += streamed

        if streamed == 0:
            raise NoDataReceived()

        logger.info(
            f"Stream complete: {streamed} packets received, "
            f"last sequence {feed.max_sequence_seen}"
        )
        return feed

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, 'state': self.state.value}
