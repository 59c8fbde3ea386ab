"""Wire codec for ABX exchange request and response frames."""

import logging
import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict

from .exceptions import MalformedPacket

logger = logging.getLogger(__name__)

# Response frame: symbol[4], side[1], quantity u32, price u32, sequence u32 (big-endian)
PACKET_STRUCT = struct.Struct(">4scIII")
PACKET_SIZE = PACKET_STRUCT.size  # 17 bytes

REQUEST_STRUCT = struct.Struct(">BB")
REQUEST_SIZE = REQUEST_STRUCT.size

MAX_SEQUENCE = 0xFFFFFFFF


class CallType(IntEnum):
    """Request opcodes understood by the exchange server."""
    STREAM_ALL = 1
    RESEND_PACKET = 2


class Side(Enum):
    """Order side as encoded on the wire."""
    BUY = "B"
    SELL = "S"

    @classmethod
    def from_byte(cls, value: bytes) -> "Side":
        try:
            return cls(value.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            raise MalformedPacket(f"Invalid side byte: {value!r}", raw=value)


@dataclass(frozen=True)
class Record:
    """One decoded market data packet."""
    symbol: str
    side: Side
    quantity: int
    price: int
    sequence: int

    def to_dict(self) -> Dict[str, Any]:
        """Output tuple layout used by the writers."""
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "quantity": self.quantity,
            "price": self.price,
            "sequence": self.sequence,
        }


def encode_request(call_type: CallType, sequence: int = 0) -> bytes:
    """
    Build a 2-byte request frame.

    The sequence argument is only meaningful for RESEND_PACKET and is sent as
    its low 8 bits; the frame has no room for anything wider.

    Args:
        call_type: Request opcode
        sequence: Target sequence number (full unsigned 32-bit range accepted)

    Returns:
        Encoded request bytes

    Raises:
        ValueError: If call_type is unknown or sequence is out of range
    """
    call_type = CallType(call_type)
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"Sequence {sequence} outside unsigned 32-bit range")

    arg = sequence & 0xFF if call_type == CallType.RESEND_PACKET else 0
    return REQUEST_STRUCT.pack(call_type.value, arg)


def decode_record(data: bytes) -> Record:
    """
    Decode exactly one 17-byte response frame.

    Raises:
        MalformedPacket: On wrong frame length or an unknown side byte
    """
    if len(data) != PACKET_SIZE:
        raise MalformedPacket(
            f"Expected {PACKET_SIZE} bytes, got {len(data)}",
            raw=bytes(data),
            details={"length": len(data)},
        )

    symbol_raw, side_raw, quantity, price, sequence = PACKET_STRUCT.unpack(data)
    side = Side.from_byte(side_raw)

    # latin-1 maps every byte to one code point, so any 4 bytes are a valid symbol
    symbol = symbol_raw.decode("latin-1")

    record = Record(
        symbol=symbol,
        side=side,
        quantity=quantity,
        price=price,
        sequence=sequence,
    )
    logger.debug(
        f"Parsed packet: {record.symbol} | Side: {record.side.value} | "
        f"Qty: {record.quantity} | Price: {record.price} | Seq: {record.sequence}"
    )
    return record
