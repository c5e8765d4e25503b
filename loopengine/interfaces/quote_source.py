"""Quote source protocol: swap quoting service abstraction."""
from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from ..models import SwapQuote


class QuoteSource(Protocol):
    """Abstract interface for fetching swap quotes."""

    async def fetch_quote(
        self, denom_in: str, denom_out: str, amount: Decimal, slippage_pct: Decimal
    ) -> SwapQuote | None: ...
