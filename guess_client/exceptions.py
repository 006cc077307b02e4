"""Errors raised by the guess-number client and its ledger adapters."""


class GuessClientError(Exception):
    """Base class for every error the client raises on purpose."""


class ProviderUnavailable(GuessClientError):
    """No wallet provider is reachable; only read-only access is possible."""


class RemoteReadError(GuessClientError):
    """A read-only ledger call failed."""


class RemoteWriteError(GuessClientError):
    """Submitting a transaction to the ledger failed."""


class ValidationError(GuessClientError):
    """A guess was rejected locally before reaching the ledger."""


class RetryExhausted(GuessClientError):
    """A bounded poll ran out of attempts."""


class PollCancelled(GuessClientError):
    """A poll was interrupted by its cancel signal."""
