"""Resolve a listing's brand, origin, shipping cost and images.

The Trading API is the primary source. When it carries no country of origin,
the Browse API is asked for that field only; nothing the primary source
returned is ever overwritten.
"""

from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from datetime import datetime

from postage_auditor.core.config import Settings
from postage_auditor.core.models import EnrichedItemRecord, Money

from .ebay import (
    ApiLogger,
    BrowseApiClient,
    EbayApiError,
    TradingApiClient,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# Highest priority first
COO_FIELD_NAMES = (
    "Country of Origin",
    "Country/Region of Manufacture",
    "Country of Manufacture",
    "Country/Region of Origin",
    "Materials Sourced From",
)

BRAND_FIELD_NAMES = ("Brand", "Brand Name")

WORLDWIDE = "Worldwide"
MARKET_LOCATIONS = {
    "US": ("US", "United States"),
    "CA": ("CA", "Canada"),
    "GB": ("GB", "United Kingdom"),
    "NZ": ("NZ", "New Zealand"),
}

_IMAGE_SIZE_RE = re.compile(r"/s-l\d+\.")


class ResolveCancelledError(Exception):
    """Raised when the shared cancellation event is set before a request."""

    pass


# ==================== Parsing helpers ====================


def find_field(pairs: Iterable[tuple[str, str]], synonyms: Iterable[str]) -> str:
    """Return the value of the highest-priority synonym present.

    Names are compared case-insensitively after trimming. Empty values do not
    count as present. The order of ``pairs`` does not matter.
    """
    values: dict[str, str] = {}
    for name, value in pairs:
        key = (name or "").strip().lower()
        value = (value or "").strip()
        if key and value and key not in values:
            values[key] = value

    for synonym in synonyms:
        value = values.get(synonym.strip().lower())
        if value:
            return value
    return ""


def upscale_image_url(url: str) -> str:
    """Rewrite eBay thumbnail sizes (s-l64, s-l500, ...) to s-l1600."""
    return _IMAGE_SIZE_RE.sub("/s-l1600.", url)


def item_specifics(item: ET.Element) -> list[tuple[str, str]]:
    """Name/value pairs from GetItem ItemSpecifics (first value of each)."""
    pairs = []
    for name_value in item.findall("ItemSpecifics/NameValueList"):
        name = name_value.findtext("Name") or ""
        values = [v.text.strip() for v in name_value.findall("Value") if v.text and v.text.strip()]
        pairs.append((name, values[0] if values else ""))
    return pairs


def browse_aspects(payload: dict) -> list[tuple[str, str]]:
    """Name/value pairs from a Browse API ``localizedAspects`` list."""
    pairs = []
    for aspect in payload.get("localizedAspects") or []:
        if isinstance(aspect, dict):
            pairs.append((str(aspect.get("name") or ""), str(aspect.get("value") or "")))
    return pairs


def _money(element: ET.Element | None) -> Money | None:
    if element is None:
        return None
    return Money.parse(element.text, element.get("currencyID"))


def shipping_cost(item: ET.Element, destination_market: str = "US") -> Money | None:
    """Shipping cost to the destination market.

    First international option shipping to the market (or worldwide), then
    the first domestic option, else None.
    """
    details = item.find("ShippingDetails")
    if details is None:
        return None

    aliases = {a.lower() for a in MARKET_LOCATIONS.get(destination_market, (destination_market,))}
    aliases.add(WORLDWIDE.lower())

    for option in details.findall("InternationalShippingServiceOption"):
        locations = {
            loc.text.strip().lower() for loc in option.findall("ShipToLocation") if loc.text
        }
        if locations & aliases:
            cost = _money(option.find("ShippingServiceCost"))
            if cost is not None:
                return cost

    for option in details.findall("ShippingServiceOptions"):
        cost = _money(option.find("ShippingServiceCost"))
        if cost is not None:
            return cost
    return None


def image_urls(item: ET.Element) -> list[str]:
    return [
        upscale_image_url(url.text.strip())
        for url in item.findall("PictureDetails/PictureURL")
        if url.text and url.text.strip()
    ]


# ==================== Reader ====================


class ItemReader:
    """Resolves one listing id into an EnrichedItemRecord.

    Performs no caching; the orchestrator owns the cache.
    """

    def __init__(
        self,
        trading: TradingApiClient,
        browse: BrowseApiClient | None = None,
        timeout: float | None = None,
        destination_market: str = "US",
    ) -> None:
        self.trading = trading
        self.browse = browse
        self.timeout = timeout
        self.destination_market = destination_market

    @classmethod
    def from_settings(cls, settings: Settings, api_logger: ApiLogger | None = None) -> "ItemReader":
        return cls(
            trading=TradingApiClient(settings, api_logger=api_logger),
            browse=BrowseApiClient(settings, api_logger=api_logger),
            timeout=settings.enrichment.request_timeout_seconds,
            destination_market=settings.ebay.destination_market,
        )

    def resolve(self, item_id: str, cancel_event: threading.Event | None = None) -> EnrichedItemRecord:
        """Resolve a listing through the primary and, if needed, secondary source.

        Raises:
            UnauthorizedError: from either source
            UpstreamError, MalformedResponseError: primary source failure
            ResolveCancelledError: the call was cancelled before a request
        """
        self._check_cancelled(cancel_event, item_id)
        item = self.trading.get_item(item_id, timeout=self.timeout)
        record = self.parse_trading_item(item_id, item)

        if record.country_of_origin or self.browse is None:
            return record

        self._check_cancelled(cancel_event, item_id)
        try:
            payload = self.browse.get_item(item_id, timeout=self.timeout)
        except UnauthorizedError:
            raise
        except EbayApiError as e:
            logger.warning(f"Browse API lookup failed for {item_id}, origin left empty: {e}")
            return record

        record.country_of_origin = find_field(browse_aspects(payload), COO_FIELD_NAMES)
        return record

    def parse_trading_item(self, item_id: str, item: ET.Element) -> EnrichedItemRecord:
        specifics = item_specifics(item)
        brand = find_field(specifics, BRAND_FIELD_NAMES)
        if not brand:
            brand = (item.findtext("ProductListingDetails/BrandMPN/Brand") or "").strip()

        return EnrichedItemRecord(
            item_id=item_id,
            brand=brand,
            country_of_origin=find_field(specifics, COO_FIELD_NAMES),
            shipping_cost=shipping_cost(item, self.destination_market),
            images=image_urls(item),
            resolved_at=datetime.now(),
        )

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None, item_id: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ResolveCancelledError(f"Resolution of {item_id} cancelled")
