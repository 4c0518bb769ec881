"""Gmail adapter for the mail provider contract."""

from .client import GmailClient

__all__ = ["GmailClient"]
