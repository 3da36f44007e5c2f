#!/usr/bin/env python
"""Integration test script - runs the whole pipeline against mock eBay data."""

from __future__ import annotations

import sys
import tempfile
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch


def main() -> int:
    """Run integration tests."""
    from postage_auditor.core.config import Settings
    from postage_auditor.db import session as session_module
    from postage_auditor.db.repository import Repository
    from postage_auditor.web.server import create_app

    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "integration.db"
        with patch("postage_auditor.db.session.get_db_path", return_value=db_path):
            print("Testing database initialization...")
            session_module.init_database(use_migrations=True)
            seeded = Repository().seed_reference_data()
            print(f"✓ Database initialized, seeded {seeded}")

            settings = Settings()
            settings.ebay.mock_mode = True
            app = create_app(settings)
            client = app.test_client()

            item_ids = [str(226500000000 + i) for i in range(25)]

            print("Testing enrichment...")
            data = client.post("/api/enrichment", json={"itemIds": item_ids}).get_json()
            print(f"✓ Enriched {data['resolved']} items, {data['failed']} failed")
            if data["resolved"] != len(item_ids):
                print("✗ Not every item resolved")
                return 1

            data = client.post("/api/enrichment", json={"itemIds": item_ids}).get_json()
            cached = sum(1 for item in data["items"].values() if item["cached"])
            print(f"✓ Second pass served {cached}/{len(item_ids)} from cache")
            if cached != len(item_ids):
                print("✗ Cache miss on second pass")
                return 1

            print("Testing batch calculation...")
            batch = [{"itemId": i, "price": float(Decimal("80") + n * 10)} for n, i in enumerate(item_ids)]
            results = client.post("/api/batch-calculate", json=batch).get_json()
            statuses: dict[str, int] = {}
            for result in results.values():
                statuses[result["diffStatus"]] = statuses.get(result["diffStatus"], 0) + 1
            print(f"✓ Calculated {len(results)} items: {statuses}")

            print("Testing calculator...")
            calc = client.post("/api/calculate", json={
                "itemValueAUD": 125,
                "weightBand": "Medium",
                "countryOfOrigin": "India",
            }).get_json()
            if calc["totalShipping"] != 113.48:
                print(f"✗ Unexpected total {calc['totalShipping']}")
                return 1
            print(f"✓ USA total {calc['totalShipping']}")

            session_module.close_database()

    print("\nAll integration checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
