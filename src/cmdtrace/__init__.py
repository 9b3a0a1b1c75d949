"""CmdTrace: index, organize and resume AI coding-assistant sessions."""

__version__ = "0.1.0"
