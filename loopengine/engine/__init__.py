"""Pure simulation engine modules."""
from . import interest_rate, position, projector, rebalancer, swap, withdrawal

__all__ = [
    "interest_rate",
    "position",
    "projector",
    "rebalancer",
    "swap",
    "withdrawal",
]
