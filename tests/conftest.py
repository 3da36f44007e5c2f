"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

from postage_auditor.core.config import Settings
from postage_auditor.core.models import EnrichedItemRecord, Money
from postage_auditor.core.reference import default_tables
from postage_auditor.core.shipping import ShippingCalculator


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    s = Settings()
    s.ebay.mock_mode = True
    s.ebay.user_token = "test-token"
    return s


@pytest.fixture
def calculator() -> ShippingCalculator:
    return ShippingCalculator(default_tables())


@pytest.fixture
def temp_db(tmp_path: Path):
    """Point the session module at a fresh SQLite file."""
    import postage_auditor.db.session as session_module

    db_path = tmp_path / "auditor-test.db"
    session_module.close_database()
    with patch("postage_auditor.db.session.get_db_path", return_value=db_path):
        session_module.init_database(use_migrations=False)
        yield db_path
        session_module.close_database()


@pytest.fixture
def sample_record() -> EnrichedItemRecord:
    """Create a sample enrichment record."""
    return EnrichedItemRecord(
        item_id="226512345678",
        brand="Camilla Franks",
        country_of_origin="India",
        shipping_cost=Money(Decimal("150.00"), "AUD"),
        images=["https://i.ebayimg.com/images/g/abc/s-l1600.jpg"],
        resolved_at=datetime.now(),
    )


GET_ITEM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<GetItemResponse xmlns="urn:ebay:apis:eBLBaseComponents">
  <Ack>Success</Ack>
  <Item>
    <ItemID>226512345678</ItemID>
    <ItemSpecifics>
      <NameValueList><Name>Brand</Name><Value>Camilla Franks</Value></NameValueList>
      <NameValueList><Name>Country/Region of Manufacture</Name><Value>India</Value></NameValueList>
    </ItemSpecifics>
    <PictureDetails>
      <PictureURL>https://i.ebayimg.com/images/g/abc/s-l500.jpg</PictureURL>
    </PictureDetails>
    <ShippingDetails>
      <ShippingServiceOptions>
        <ShippingServiceCost currencyID="AUD">10.00</ShippingServiceCost>
      </ShippingServiceOptions>
      <InternationalShippingServiceOption>
        <ShippingServiceCost currencyID="AUD">85.50</ShippingServiceCost>
        <ShipToLocation>US</ShipToLocation>
      </InternationalShippingServiceOption>
    </ShippingDetails>
  </Item>
</GetItemResponse>"""


@pytest.fixture
def get_item_xml() -> str:
    """A successful namespaced GetItem response."""
    return GET_ITEM_XML
