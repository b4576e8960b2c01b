"""Chess game review: engine-backed move quality analysis and replay."""

__version__ = "0.1.0"
