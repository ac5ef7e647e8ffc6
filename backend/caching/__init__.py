"""Lookup caches."""

from caching.caches import ArtworkIndexCache, BoundedCache, HarmonicPairCache

__all__ = [
    "ArtworkIndexCache",
    "BoundedCache",
    "HarmonicPairCache",
]
