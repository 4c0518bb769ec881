"""Recipient Suggest - contact indexing and recipient autosuggest.

This package builds a ranked, per-account contact cache from a mailbox and
resolves recipient suggestions from it, falling back to a live scan of recent
threads when the cache has nothing to offer.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from recipient_suggest.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
