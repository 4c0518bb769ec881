"""Contact discovery, caching and recipient suggestion.

The extractor scores addresses found in threads, the store keeps a ranked
contact set per account, the indexer fills the store from the whole mailbox
and the resolver answers suggestion queries.
"""

from .extractor import accumulate_observations, extract_observations
from .indexer import ContactIndexer
from .resolver import SuggestionResolver
from .store import ContactStore

__all__ = [
    "ContactIndexer",
    "ContactStore",
    "SuggestionResolver",
    "accumulate_observations",
    "extract_observations",
]
