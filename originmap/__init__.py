"""originmap: country-of-origin resolution and aggregation for a listener's library."""

__version__ = "0.1.0"
