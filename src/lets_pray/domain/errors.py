"""Domain exceptions."""


class LetsPrayError(Exception):
    """Base class for application errors."""


class ProviderError(LetsPrayError):
    """Prayer time or location lookup failed (network, parse or timeout)."""


class NotFoundError(LetsPrayError):
    """Requested record does not exist (no saved settings, unknown location)."""


class PersistenceError(LetsPrayError):
    """Settings could not be written to storage."""


class PermissionDeniedError(LetsPrayError):
    """The OS refused to show a notification."""
