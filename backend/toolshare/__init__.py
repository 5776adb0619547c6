"""ToolShare booking lifecycle and settlement backend."""

__version__ = "0.4.0"
