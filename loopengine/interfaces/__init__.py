"""Protocol interfaces for external collaborators."""
from .quote_source import QuoteSource

__all__ = ["QuoteSource"]
