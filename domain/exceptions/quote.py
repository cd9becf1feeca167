class QuoteServiceError(Exception):
    pass


class SourceError(QuoteServiceError):
    """A single quote source failed to produce a valid quote."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class AggregationError(QuoteServiceError):
    pass


class PersistenceError(QuoteServiceError):
    pass


class InvalidCurrencyError(QuoteServiceError):
    pass
