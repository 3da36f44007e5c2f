"""eBay Trading and Browse API clients."""

from __future__ import annotations

import json
import logging
import time
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any
from xml.sax.saxutils import escape

import requests

from postage_auditor.core.config import Settings

logger = logging.getLogger(__name__)

# Trading API error codes that mean the token is unusable
AUTH_ERROR_CODES = frozenset({"931", "932", "16110", "17470", "21916984"})

GET_ITEM_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<GetItemRequest xmlns="urn:ebay:apis:eBLBaseComponents">
  <ItemID>{item_id}</ItemID>
  <DetailLevel>ReturnAll</DetailLevel>
  <IncludeItemSpecifics>true</IncludeItemSpecifics>
</GetItemRequest>"""


class EbayApiError(Exception):
    """Base class for upstream eBay failures."""

    pass


class UnauthorizedError(EbayApiError):
    """The user token was rejected. Fatal for the whole enrichment call."""

    pass


class UpstreamError(EbayApiError):
    """Network failure, timeout or 5xx response for a single item."""

    pass


class RateLimitError(UpstreamError):
    """Raised when eBay answers 429."""

    pass


class MalformedResponseError(EbayApiError):
    """The response could not be parsed or reported a failed call."""

    pass


ApiLogger = Callable[..., None]


def _strip_namespaces(root: ET.Element) -> ET.Element:
    """Drop the eBay namespace so elements can be found by bare tag name."""
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
    return root


class _EbayClient:
    """Shared session, timeout and call-logging behaviour."""

    API_NAME = "ebay"

    def __init__(self, settings: Settings, api_logger: ApiLogger | None = None) -> None:
        self.settings = settings
        self.config = settings.ebay
        self.mock_mode = settings.ebay.mock_mode
        self.default_timeout = settings.enrichment.request_timeout_seconds
        self.api_logger = api_logger

        # Session with keep-alive, shared by all worker threads
        self.session = requests.Session()
        self.session.headers.update({
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        })

    def _require_token(self) -> str:
        if not self.config.user_token:
            raise UnauthorizedError("No eBay user token configured")
        return self.config.user_token

    def _send(
        self,
        method: str,
        url: str,
        endpoint: str,
        item_id: str,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send one request and map transport and status failures to exceptions."""
        timeout = timeout or self.default_timeout
        start_time = time.time()
        try:
            response = self.session.request(method, url, timeout=timeout, **kwargs)
        except requests.Timeout as e:
            self._log_call(endpoint, method, item_id, 0, 0, start_time, False, f"timeout: {e}")
            raise UpstreamError(f"{endpoint} timed out for item {item_id}") from e
        except requests.RequestException as e:
            self._log_call(endpoint, method, item_id, 0, 0, start_time, False, str(e))
            raise UpstreamError(f"{endpoint} failed for item {item_id}: {e}") from e

        status = response.status_code
        success = status < 400
        self._log_call(
            endpoint,
            method,
            item_id,
            status,
            len(response.content or b""),
            start_time,
            success,
            "" if success else response.text[:500],
        )

        if status in (401, 403):
            raise UnauthorizedError(f"{endpoint} rejected the token (HTTP {status})")
        if status == 429:
            retry_after = response.headers.get("Retry-After", "")
            raise RateLimitError(f"Rate limited by {endpoint}. Retry after {retry_after or '?'}s")
        if status >= 400:
            raise UpstreamError(f"{endpoint} returned HTTP {status} for item {item_id}")
        return response

    def _log_call(
        self,
        endpoint: str,
        method: str,
        item_id: str,
        status: int,
        size: int,
        start_time: float,
        success: bool,
        error_message: str,
    ) -> None:
        if self.api_logger is None:
            return
        try:
            self.api_logger(
                api_name=self.API_NAME,
                endpoint=endpoint,
                method=method,
                request_params=f"item_id={item_id}",
                response_status=status,
                response_size=size,
                duration_ms=int((time.time() - start_time) * 1000),
                success=success,
                error_message=error_message,
            )
        except Exception:
            # Call logging must never fail an enrichment
            logger.exception("Failed to record API call")


class TradingApiClient(_EbayClient):
    """Trading API client for GetItem (XML)."""

    API_NAME = "trading"

    def get_item(self, item_id: str, timeout: float | None = None) -> ET.Element:
        """Fetch a listing and return its ``Item`` element.

        Raises:
            UnauthorizedError: token missing or rejected
            UpstreamError: network failure, timeout, 429 or 5xx
            MalformedResponseError: unparsable XML or Ack=Failure
        """
        if self.mock_mode:
            from postage_auditor.utils.mock_data import get_mock_get_item_xml
            return self._parse_response(item_id, get_mock_get_item_xml(item_id))

        token = self._require_token()
        headers = {
            "X-EBAY-API-COMPATIBILITY-LEVEL": str(self.config.compatibility_level),
            "X-EBAY-API-CALL-NAME": "GetItem",
            "X-EBAY-API-SITEID": str(self.config.site_id),
            "X-EBAY-API-IAF-TOKEN": token,
            "Content-Type": "text/xml",
        }
        body = GET_ITEM_TEMPLATE.format(item_id=escape(item_id))
        response = self._send(
            "POST",
            self.config.trading_api_url,
            endpoint="GetItem",
            item_id=item_id,
            timeout=timeout,
            headers=headers,
            data=body.encode("utf-8"),
        )
        return self._parse_response(item_id, response.content)

    def _parse_response(self, item_id: str, content: bytes | str) -> ET.Element:
        try:
            root = _strip_namespaces(ET.fromstring(content))
        except ET.ParseError as e:
            raise MalformedResponseError(f"GetItem returned invalid XML for item {item_id}: {e}") from e

        ack = (root.findtext("Ack") or "").strip()
        if ack not in ("Success", "Warning"):
            errors = root.findall("Errors")
            codes = [(e.findtext("ErrorCode") or "").strip() for e in errors]
            messages = [
                (e.findtext("LongMessage") or e.findtext("ShortMessage") or "").strip()
                for e in errors
            ]
            detail = "; ".join(f"{c}: {m}" for c, m in zip(codes, messages)) or f"Ack={ack or 'missing'}"
            if AUTH_ERROR_CODES.intersection(codes):
                raise UnauthorizedError(f"GetItem rejected the token: {detail}")
            raise MalformedResponseError(f"GetItem failed for item {item_id}: {detail}")

        item = root.find("Item")
        if item is None:
            raise MalformedResponseError(f"GetItem response for item {item_id} has no Item element")
        return item


class BrowseApiClient(_EbayClient):
    """Browse API client for get_item_by_legacy_id (JSON)."""

    API_NAME = "browse"

    def get_item(self, item_id: str, timeout: float | None = None) -> dict:
        """Fetch a listing's Browse API representation."""
        if self.mock_mode:
            from postage_auditor.utils.mock_data import get_mock_browse_item
            return get_mock_browse_item(item_id)

        token = self._require_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "X-EBAY-C-MARKETPLACE-ID": self.config.marketplace_id,
            "Accept": "application/json",
        }
        response = self._send(
            "GET",
            f"{self.config.browse_api_url}/item/get_item_by_legacy_id",
            endpoint="get_item_by_legacy_id",
            item_id=item_id,
            timeout=timeout,
            headers=headers,
            params={"legacy_item_id": item_id},
        )
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise MalformedResponseError(f"Browse API returned invalid JSON for item {item_id}") from e
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Browse API returned unexpected payload for item {item_id}")
        return data
