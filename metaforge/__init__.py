"""MetaForge - metadata aggregation engine."""

__version__ = "1.0.0"
