"""sysgauge - named system metrics for scriptable monitor displays."""

__version__ = "0.1.0"
