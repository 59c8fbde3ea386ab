"""
ABX Feed Client - binary market data collector for the ABX exchange server.

This package streams fixed-layout order packets from the exchange, detects
sequence gaps, re-requests the missing packets one at a time and writes the
complete, ordered dataset to an output sink.
"""

__version__ = "1.0.0"
__author__ = "ABX Client Team"
