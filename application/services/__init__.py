from .quote_aggregator import QuoteAggregator
from .quote_history import QuoteHistoryService
from .quote_refresher import QuoteRefresher
from .status_tracker import StatusTracker

__all__ = ['QuoteAggregator', 'QuoteHistoryService', 'QuoteRefresher', 'StatusTracker']
