"""
Shared fixtures. Shopify is replaced by an httpx.MockTransport; the app's
HTTP client dependency is overridden to use it.
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from stock_counter.config import settings
from stock_counter.services.http_client import get_http_client


class FakeShopify:
    """Records every outbound request and answers from a queue or a handler."""

    def __init__(self):
        self.requests = []
        self.responses = []
        self.handler = None

    def queue(self, *responses):
        self.responses.extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        if not self.responses:
            return httpx.Response(500, json={"errors": "no response queued"})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def bodies(self):
        return [json.loads(r.content) for r in self.requests]

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def shopify():
    return FakeShopify()


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "SHOPIFY_API_KEY", "test-key")
    monkeypatch.setattr(settings, "SHOPIFY_API_SECRET", "test-secret")
    monkeypatch.setattr(settings, "SHOPIFY_ACCESS_TOKEN", "")
    monkeypatch.setattr(settings, "SHOP", "panel-company.myshopify.com")
    monkeypatch.setattr(settings, "INVENTORY_UPDATE_DELAY_MS", 0)
    return settings


@pytest.fixture
def client(shopify):
    async def override_get_http_client():
        async with shopify.async_client() as http_client:
            yield http_client

    app.dependency_overrides[get_http_client] = override_get_http_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_http_client, None)
