"""Exception taxonomy shared by the quote, storage and refresh layers."""


class PortfolioServiceError(Exception):
    """Base class for all errors raised by this package."""


class QuoteError(PortfolioServiceError):
    """A single ticker could not be priced."""

    def __init__(self, ticker: str, message: str):
        super().__init__(f"{ticker}: {message}")
        self.ticker = ticker
        self.message = message


class TransportError(QuoteError):
    """Network failure, timeout, non-2xx status or unreadable body."""


class ProviderError(QuoteError):
    """The provider answered but gave no usable price."""


class StorageError(PortfolioServiceError):
    """Loading or writing holdings failed."""
