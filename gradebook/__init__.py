"""Grade aggregation for a single classroom."""

__version__ = "0.1.0"
