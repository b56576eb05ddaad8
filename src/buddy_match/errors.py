class BuddyError(Exception):
    """Base class for errors raised by the coordination core."""


class InvalidInput(BuddyError):
    """A required field is missing, empty or unrecognized."""


class NotFound(BuddyError):
    """A referenced session or saved chat does not exist."""


class StoreError(BuddyError):
    """The underlying key-value store failed."""


class ProviderError(BuddyError):
    """The completions provider failed or returned nothing usable."""
