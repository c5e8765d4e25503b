"""Engine error kinds and exceptions."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_LEVERAGE = "invalid_leverage"
    INVALID_PRINCIPAL = "invalid_principal"
    INVALID_AMOUNT_FORMAT = "invalid_amount_format"
    MARKET_NOT_FOUND = "market_not_found"
    UNSUPPORTED_ACTION = "unsupported_action"
    DIVIDE_BY_ZERO_GUARDED = "divide_by_zero_guarded"
    STALE_QUOTE = "stale_quote"


class EngineError(ValueError):
    """Base class for invalid caller input."""

    kind: ErrorKind


class InvalidLeverage(EngineError):
    kind = ErrorKind.INVALID_LEVERAGE


class InvalidPrincipal(EngineError):
    kind = ErrorKind.INVALID_PRINCIPAL


class InvalidAmountFormat(EngineError):
    kind = ErrorKind.INVALID_AMOUNT_FORMAT


class MarketNotFound(EngineError):
    kind = ErrorKind.MARKET_NOT_FOUND


class UnsupportedAction(EngineError):
    kind = ErrorKind.UNSUPPORTED_ACTION


class StaleQuote(EngineError):
    """A quote-dependent result was superseded by a newer request."""

    kind = ErrorKind.STALE_QUOTE
