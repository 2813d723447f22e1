"""cuelight - lighting module control core for billiard hall point of sale."""

__version__ = "0.1.0"
