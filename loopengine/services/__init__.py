"""Service modules."""
from .rebalance_preview import RebalancePreview, RebalancePreviewResult

__all__ = ["RebalancePreview", "RebalancePreviewResult"]
