"""
Exception types for the valor bot.

Malformed event messages are not errors (the parser returns None); these cover
configuration problems and the collaborators the ledger depends on.
"""


class ValorError(Exception):
    """Base class for valor bot errors."""
    pass


class ConfigError(ValorError):
    """Raised when required configuration is missing or invalid."""
    pass


class HistoryFetchError(ValorError):
    """Raised when a page of channel history cannot be fetched."""
    pass


class SnapshotStoreError(ValorError):
    """Raised when the ledger snapshot cannot be read or written."""
    pass


class ReplayInProgressError(ValorError):
    """Raised when a mutating operation is attempted while a replay runs."""
    pass
