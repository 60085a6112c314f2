"""Service layer namespace."""

__all__ = [
    "aggregation",
    "decoder",
    "extractor",
]
