"""Resilient live/cached/mock resolution of prices, geo-history and crop narratives."""

__version__ = "0.1.0"
