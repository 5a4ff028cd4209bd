"""Autoplay radio engine: picks the next tracks for a listening session."""

__version__ = "0.1.0"
