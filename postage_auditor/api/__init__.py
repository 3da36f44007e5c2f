"""eBay API clients for Postage Auditor."""

from .ebay import (
    BrowseApiClient,
    EbayApiError,
    MalformedResponseError,
    RateLimitError,
    TradingApiClient,
    UnauthorizedError,
    UpstreamError,
)
from .item_reader import ItemReader

__all__ = [
    "TradingApiClient",
    "BrowseApiClient",
    "ItemReader",
    "EbayApiError",
    "UnauthorizedError",
    "UpstreamError",
    "RateLimitError",
    "MalformedResponseError",
]
