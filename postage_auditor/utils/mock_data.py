"""Mock eBay responses for running without API credentials."""

from __future__ import annotations

import random
from xml.sax.saxutils import escape

from postage_auditor.core.reference import DEFAULT_BRAND_COUNTRIES

MOCK_BRANDS = sorted(DEFAULT_BRAND_COUNTRIES)

MOCK_CURRENCY = "AUD"


def _mock_listing(item_id: str) -> dict:
    """Deterministic listing attributes derived from the item id."""
    rng = random.Random(item_id)
    brand = rng.choice(MOCK_BRANDS)
    # Roughly a third of listings omit origin from their item specifics
    has_origin = rng.random() > 0.33
    return {
        "brand": brand,
        "country": DEFAULT_BRAND_COUNTRIES[brand] if rng.random() > 0.2 else "China",
        "has_origin": has_origin,
        "shipping": f"{rng.randint(3500, 12000) / 100:.2f}",
        "image_count": rng.randint(1, 4),
    }


def get_mock_get_item_xml(item_id: str) -> str:
    """Generate a GetItem response in the Trading API's XML shape."""
    listing = _mock_listing(item_id)
    safe_id = escape(item_id)

    specifics = [
        ("Brand", listing["brand"]),
        ("Size", "M"),
    ]
    if listing["has_origin"]:
        specifics.append(("Country/Region of Manufacture", listing["country"]))

    specifics_xml = "".join(
        f"<NameValueList><Name>{escape(name)}</Name><Value>{escape(value)}</Value></NameValueList>"
        for name, value in specifics
    )
    pictures_xml = "".join(
        f"<PictureURL>https://i.ebayimg.com/images/g/mock{safe_id}{n}/s-l500.jpg</PictureURL>"
        for n in range(listing["image_count"])
    )

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<GetItemResponse xmlns="urn:ebay:apis:eBLBaseComponents">
  <Ack>Success</Ack>
  <Item>
    <ItemID>{safe_id}</ItemID>
    <ItemSpecifics>{specifics_xml}</ItemSpecifics>
    <PictureDetails>{pictures_xml}</PictureDetails>
    <ShippingDetails>
      <ShippingServiceOptions>
        <ShippingService>AU_Regular</ShippingService>
        <ShippingServiceCost currencyID="{MOCK_CURRENCY}">0.00</ShippingServiceCost>
      </ShippingServiceOptions>
      <InternationalShippingServiceOption>
        <ShippingService>AU_StandardInternational</ShippingService>
        <ShippingServiceCost currencyID="{MOCK_CURRENCY}">{listing["shipping"]}</ShippingServiceCost>
        <ShipToLocation>Worldwide</ShipToLocation>
      </InternationalShippingServiceOption>
    </ShippingDetails>
  </Item>
</GetItemResponse>"""


def get_mock_browse_item(item_id: str) -> dict:
    """Generate a Browse API item; always carries the origin aspect."""
    listing = _mock_listing(item_id)
    return {
        "itemId": f"v1|{item_id}|0",
        "legacyItemId": item_id,
        "brand": listing["brand"],
        "localizedAspects": [
            {"type": "STRING", "name": "Brand", "value": listing["brand"]},
            {"type": "STRING", "name": "Country of Origin", "value": listing["country"]},
        ],
    }
