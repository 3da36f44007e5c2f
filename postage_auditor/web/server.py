"""Flask JSON API for enrichment and postage calculation."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import Flask, jsonify, request

from postage_auditor.core.config import Settings, get_settings
from postage_auditor.core.enrichment import EnrichmentAuthError, EnrichmentOrchestrator
from postage_auditor.core.models import BatchItem
from postage_auditor.core.shipping import CalculationInputError, ShippingCalculator
from postage_auditor.db.repository import Repository

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes")


def _decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None or value == "":
        raise CalculationInputError(f"{field} is required")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise CalculationInputError(f"{field} must be a number") from e
    if not result.is_finite() or result < 0:
        raise CalculationInputError(f"{field} must be a non-negative number")
    return result


def _int(value: Any, field: str, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise CalculationInputError(f"{field} must be an integer") from e


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _item_ids_from_request() -> list[str]:
    if request.method == "POST":
        body = request.get_json(silent=True) or {}
        ids = body.get("itemIds") if isinstance(body, dict) else body
        if isinstance(ids, str):
            ids = ids.split(",")
        if ids is None:
            return []
        if not isinstance(ids, list):
            raise CalculationInputError("itemIds must be a list or a comma-separated string")
        return [str(i) for i in ids]
    return request.args.get("itemIds", "").split(",")


def _build_orchestrator(settings: Settings, repo: Repository) -> EnrichmentOrchestrator:
    from postage_auditor.api.item_reader import ItemReader
    from postage_auditor.db.cache import EnrichmentCache

    return EnrichmentOrchestrator(
        reader=ItemReader.from_settings(settings, api_logger=repo.save_api_log),
        cache=EnrichmentCache(),
        max_workers=settings.enrichment.max_concurrent_requests,
        default_ttl=settings.enrichment.enrichment_ttl,
    )


def create_app(
    settings: Settings | None = None,
    orchestrator: EnrichmentOrchestrator | None = None,
    repo: Repository | None = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.json.sort_keys = False

    settings = settings or get_settings()
    repo = repo or Repository()
    orchestrator = orchestrator or _build_orchestrator(settings, repo)

    def calculator() -> ShippingCalculator:
        # Tariff and brand tables are editable, so read them per call
        return ShippingCalculator(repo.load_reference_tables())

    @app.errorhandler(CalculationInputError)
    def handle_input_error(e: CalculationInputError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(EnrichmentAuthError)
    def handle_auth_error(e: EnrichmentAuthError):
        return jsonify({"error": f"eBay authentication failed: {e}"}), 401

    @app.route("/api/health")
    def api_health():
        return jsonify({
            "status": "ok",
            "mockMode": settings.ebay.mock_mode,
            "time": datetime.now().isoformat(),
        })

    # ==================== Enrichment ====================

    @app.route("/api/enrichment", methods=["GET", "POST"])
    def api_enrichment():
        """Enrich listings, serving fresh cache entries without upstream calls."""
        item_ids = [i for i in _item_ids_from_request() if i.strip()]
        if not item_ids:
            return jsonify({"error": "itemIds is required"}), 400

        refresh = _bool(request.args.get("refresh", ""))
        if request.method == "POST":
            body = request.get_json(silent=True)
            if isinstance(body, dict) and "refresh" in body:
                refresh = _bool(body["refresh"])

        results = orchestrator.enrich(item_ids, force_refresh=refresh)
        resolved = sum(1 for r in results.values() if r.is_resolved)
        return jsonify({
            "items": {item_id: r.to_dict() for item_id, r in results.items()},
            "resolved": resolved,
            "failed": len(results) - resolved,
        })

    @app.route("/api/enrichment/cached")
    def api_enrichment_cached():
        """Cache-only read at the display TTL."""
        item_ids = _item_ids_from_request()
        results = orchestrator.get_cached(item_ids, settings.enrichment.display_ttl)
        return jsonify({
            "items": {item_id: r.to_dict() for item_id, r in results.items()},
            "count": len(results),
        })

    # ==================== Calculation ====================

    @app.route("/api/batch-calculate", methods=["POST"])
    def api_batch_calculate():
        """Expected postage for listings already enriched."""
        from postage_auditor.core.batch import BatchCalculationService

        body = request.get_json(silent=True)
        if isinstance(body, dict):
            body = body.get("items")
        if not isinstance(body, list):
            return jsonify({"error": "Expected a list of {itemId, price}"}), 400

        items = []
        for entry in body:
            if not isinstance(entry, dict) or not str(entry.get("itemId", "")).strip():
                raise CalculationInputError("every item needs an itemId")
            items.append(BatchItem(
                item_id=str(entry["itemId"]).strip(),
                price=_decimal(entry.get("price"), "price"),
            ))

        cached = orchestrator.get_cached([i.item_id for i in items], settings.enrichment.enrichment_ttl)
        enrichment = {item_id: r.record for item_id, r in cached.items() if r.record is not None}

        service = BatchCalculationService(settings, repo.load_reference_tables())
        results = service.calculate_batch(items, enrichment)
        return jsonify({item_id: r.to_dict() for item_id, r in results.items()})

    def _calculation_args() -> dict[str, Any]:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise CalculationInputError("Expected a JSON object")
        return {
            "item_value": _decimal(body.get("itemValueAUD"), "itemValueAUD"),
            "weight_band": str(body.get("weightBand") or "Medium"),
            "brand": str(body.get("brandName") or ""),
            "country_of_origin": str(body.get("countryOfOrigin") or ""),
            "include_extra_cover": _bool(body.get("includeExtraCover", False)),
            "discount_band": _int(body.get("discountBand"), "discountBand"),
        }

    @app.route("/api/calculate", methods=["POST"])
    def api_calculate():
        result = calculator().calculate_usa_shipping(**_calculation_args())
        return jsonify(result.to_dict())

    @app.route("/api/calculate/zones", methods=["POST"])
    def api_calculate_zones():
        results = calculator().calculate_all_zones(**_calculation_args())
        return jsonify({"zones": [r.to_dict() for r in results]})

    # ==================== Reference Data ====================

    @app.route("/api/reference/brands")
    def api_brands():
        brand_countries = repo.get_brand_countries()
        return jsonify({
            "brands": [
                {"brand": brand, "country": brand_countries[brand]}
                for brand in sorted(brand_countries)
            ]
        })

    @app.route("/api/reference/brands", methods=["POST"])
    def api_save_brand():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise CalculationInputError("Expected a JSON object")
        brand = str(body.get("brandName") or "").strip()
        country = str(body.get("primaryCoo") or "").strip()
        if not brand or not country:
            raise CalculationInputError("brandName and primaryCoo are required")

        repo.upsert_brand_country(brand, country)
        logger.info(f"Brand mapping saved: {brand} -> {country}")
        return jsonify({"brand": brand, "country": country}), 201

    @app.route("/api/reference/brands/<path:brand>", methods=["DELETE"])
    def api_delete_brand(brand: str):
        if not repo.delete_brand_country(brand):
            return jsonify({"error": f"Unknown brand: {brand}"}), 404
        logger.info(f"Brand mapping deleted: {brand}")
        return jsonify({"deleted": brand})

    @app.route("/api/reference/tariffs")
    def api_tariffs():
        return jsonify({"tariffs": calculator().tariff_countries()})

    @app.route("/api/reference/tariffs", methods=["POST"])
    def api_save_tariff():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise CalculationInputError("Expected a JSON object")
        country = str(body.get("countryName") or "").strip()
        if not country:
            raise CalculationInputError("countryName is required")
        rate = _decimal(body.get("tariffRate"), "tariffRate")
        if rate > 1:
            raise CalculationInputError("tariffRate must be between 0 and 1")

        repo.upsert_tariff_rate(country, rate)
        logger.info(f"Tariff rate saved: {country} = {rate}")
        return jsonify({"country": country, "rate": float(rate)}), 201

    @app.route("/api/reference/tariffs/<path:country>", methods=["DELETE"])
    def api_delete_tariff(country: str):
        if not repo.delete_tariff_rate(country):
            return jsonify({"error": f"Unknown country: {country}"}), 404
        logger.info(f"Tariff rate deleted: {country}")
        return jsonify({"deleted": country})

    @app.route("/api/reference/weight-bands")
    def api_weight_bands():
        zone = request.args.get("zone", "3")
        return jsonify({"weightBands": calculator().weight_bands(zone)})

    @app.route("/api/usage")
    def api_usage():
        hours = _int(request.args.get("hours"), "hours", default=24)
        return jsonify(repo.get_call_usage_stats(hours, settings.enrichment.daily_call_budget))

    return app


class WebServer:
    """Manages the Flask web server in a background thread."""

    def __init__(self, settings: Settings, host: str | None = None, port: int | None = None) -> None:
        self.settings = settings
        self.host = host or settings.host
        self.port = port or settings.port
        self._app: Flask | None = None
        self._thread: threading.Thread | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self, block: bool = False) -> str:
        """Start the web server. Returns the URL."""
        if self._running:
            return self.url

        self._app = create_app(self.settings)
        self._running = True
        logging.getLogger("werkzeug").setLevel(logging.ERROR)
        logger.info(f"API server starting at {self.url}")

        if block:
            self._run()
        else:
            self._thread = threading.Thread(target=self._run, daemon=True)
            self._thread.start()
        return self.url

    def _run(self) -> None:
        try:
            self._app.run(
                host=self.host,
                port=self.port,
                debug=False,
                use_reloader=False,
                threaded=True,
            )
        except OSError as e:
            logger.error(f"Web server error: {e}")
        finally:
            self._running = False

    def stop(self) -> None:
        """Stop the web server."""
        self._running = False
        # The daemon thread stops with the process
        logger.info("API server stopped")
