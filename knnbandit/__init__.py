"""Offline simulation of interactive recommendation over a fixed rating dataset."""

__version__ = "0.1.0"
