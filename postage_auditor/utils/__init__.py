"""Utility modules for Postage Auditor."""

from .mock_data import get_mock_browse_item, get_mock_get_item_xml

__all__ = [
    "get_mock_get_item_xml",
    "get_mock_browse_item",
]
