"""Mail provider contract.

Anything that can list a folder page by page and fetch a thread's addressing
metadata can feed the indexer and the live suggestion scan.
"""

from .base import FOLDER_DRAFT, FOLDER_INBOX, FOLDER_SENT, FOLDER_SPAM, FOLDER_TRASH, MailProvider

__all__ = [
    "FOLDER_DRAFT",
    "FOLDER_INBOX",
    "FOLDER_SENT",
    "FOLDER_SPAM",
    "FOLDER_TRASH",
    "MailProvider",
]
