"""Caching and analytics proxy in front of the Funnelback search backend."""

__version__ = "1.0.0"
