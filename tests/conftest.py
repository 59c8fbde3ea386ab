"""Pytest configuration and shared fixtures."""

import struct
from typing import Dict, List, Optional, Sequence, Union

import pytest

from abx_client.codec import CallType
from abx_client.config.settings import ClientSettings, LoggingConfig, OutputConfig, RetryConfig, ServerConfig

Response = Union[bytes, Exception]


def build_frame(symbol: str = "ABCD", side: str = "B", quantity: int = 100,
                price: int = 1000, sequence: int = 1) -> bytes:
    """Pack a response frame independently of the codec under test."""
    return (
        symbol.encode("ascii")
        + side.encode("ascii")
        + struct.pack(">III", quantity, price, sequence)
    )


class FakeChannel:
    """In-memory stand-in for abx_client.clients.channel.Channel."""

    def __init__(self, exchange: "FakeExchange"):
        self.exchange = exchange
        self.sent: List[bytes] = []
        self._responses: List[Response] = []
        self.closed = False

    async def send(self, data: bytes) -> None:
        self.sent.append(data)
        self.exchange.requests.append(data)
        self._responses = list(self.exchange.respond(data))

    async def receive(self) -> bytes:
        if not self._responses:
            return b""
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class FakeExchange:
    """
    Scripted exchange: a STREAM_ALL request yields `stream`, a RESEND_PACKET
    request yields `resend[low_byte]` if present, otherwise nothing.
    """

    def __init__(self, stream: Sequence[Response] = (), resend: Optional[Dict[int, Response]] = None):
        self.stream = list(stream)
        self.resend = dict(resend or {})
        self.requests: List[bytes] = []
        self.channels: List[FakeChannel] = []

    def respond(self, request: bytes) -> List[Response]:
        call_type, arg = request[0], request[1]
        if call_type == CallType.STREAM_ALL:
            return list(self.stream)
        if arg in self.resend:
            return [self.resend[arg]]
        return []

    async def open(self) -> FakeChannel:
        channel = FakeChannel(self)
        self.channels.append(channel)
        return channel

    def get_stats(self):
        return {'connections_opened': len(self.channels)}

    @property
    def resend_requests(self) -> List[bytes]:
        return [r for r in self.requests if r[0] == CallType.RESEND_PACKET]


@pytest.fixture
def frame():
    """Frame builder."""
    return build_frame


@pytest.fixture
def make_exchange():
    """Factory for scripted fake exchanges."""
    def _make(stream=(), resend=None) -> FakeExchange:
        return FakeExchange(stream, resend)
    return _make


@pytest.fixture
def gapped_stream(frame) -> List[bytes]:
    """Sequences 1, 2, 3, 5 with alternating sides; 4 is missing."""
    return [
        frame("ABCD", "B", 50, 100, 1),
        frame("ABCD", "S", 30, 98, 2),
        frame("ABCD", "B", 40, 101, 3),
        frame("ABCD", "S", 20, 97, 5),
    ]


@pytest.fixture
def test_settings(tmp_path) -> ClientSettings:
    """Client settings pointing at a temporary output file."""
    return ClientSettings(
        service_name="test-abx-client",
        environment="local",
        server=ServerConfig(host="127.0.0.1", port=3000, connect_timeout_seconds=1.0),
        retry=RetryConfig(max_attempts=1, initial_backoff_seconds=0.01, jitter=False),
        output=OutputConfig(path=str(tmp_path / "output.json")),
        logging=LoggingConfig(level="DEBUG", format="text", output="stderr"),
    )
