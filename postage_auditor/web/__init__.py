"""HTTP API for Postage Auditor."""
