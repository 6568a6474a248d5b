"""Asyncio client for the Reader.Market REST API and its realtime stream."""

__version__ = "0.1.0"
