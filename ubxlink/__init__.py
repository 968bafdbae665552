"""UBX protocol framing, message dispatch and configuration for u-blox GNSS receivers."""

__version__ = "0.1.0"