"""autoreel: durable render pipeline for short-form highlight reels."""

__version__ = "0.1.0"
