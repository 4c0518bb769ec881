"""Custom exceptions for Recipient Suggest."""


class RecipientSuggestError(Exception):
    """Base exception for all Recipient Suggest errors."""


class MailProviderError(RecipientSuggestError):
    """Exception raised when the mail provider API fails."""


class ContactStoreError(RecipientSuggestError):
    """Exception raised when the contact store cannot be read or written."""


class ConfigurationError(RecipientSuggestError):
    """Exception raised for configuration related errors."""


class AuthenticationError(RecipientSuggestError):
    """Exception raised for authentication failures."""


class ValidationError(RecipientSuggestError):
    """Exception raised for data validation errors."""
