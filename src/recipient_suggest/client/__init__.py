"""Client-side recipient input orchestration."""

from .autosuggest import RecipientAutosuggest

__all__ = ["RecipientAutosuggest"]
