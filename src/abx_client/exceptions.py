"""Exception hierarchy for the ABX feed client."""

from typing import Any, Dict, Optional


class ABXClientError(Exception):
    """Base exception for all ABX client failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ChannelError(ABXClientError):
    """Transport-level failure other than an orderly close by the peer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CHANNEL_ERROR", details)


class MalformedPacket(ABXClientError):
    """A response frame could not be decoded into a Record."""

    def __init__(
        self,
        message: str,
        raw: bytes = b"",
        details: Optional[Dict[str, Any]] = None,
    ):
        super_details = details or {}
        if raw:
            super_details["raw_hex"] = raw.hex()
        super().__init__(message, "MALFORMED_PACKET", super_details)
        self.raw = raw


class NoDataReceived(ABXClientError):
    """The primary stream closed without delivering a single record."""

    def __init__(self, message: str = "No packets received from stream", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NO_DATA_RECEIVED", details)


class ConfigurationError(ABXClientError):
    """Configuration file missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)
