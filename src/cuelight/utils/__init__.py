"""Generic utility modules for cuelight.

- formatting: Uptime and signal strength display strings
"""

from .formatting import format_signal, format_uptime

__all__ = ["format_signal", "format_uptime"]
