"""
Error taxonomy. Each error knows the HTTP status and JSON body it maps to;
main.py turns them into responses at the outer boundary.
"""
from typing import Any, Dict


class StockCounterError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ConfigurationMissing(StockCounterError):
    """A required secret or environment value is absent. Not user-actionable."""
    status_code = 500


class Unauthenticated(StockCounterError):
    """No usable credential; the client should restart the OAuth flow."""
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "needsAuth": True}


class InvalidRequest(StockCounterError):
    """Malformed query or body; the caller must correct its input."""
    status_code = 400


class NoUpdates(InvalidRequest):
    def __init__(self, message: str = "No updates provided"):
        super().__init__(message)


class HandshakeRejected(StockCounterError):
    """OAuth callback failed nonce or HMAC verification. Never retried."""
    status_code = 403


class UpstreamError(StockCounterError):
    """Shopify returned an error or a non-2xx status."""
    status_code = 500
