"""Postage Auditor: eBay listing enrichment and expected-postage calculation."""

__version__ = "1.0.0"
