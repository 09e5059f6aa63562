# src/giftrank/__init__.py — v1
"""giftrank: LLM-assisted re-ranking of retrieved gift candidates."""

from giftrank.version import __version__

__all__ = ["__version__"]
