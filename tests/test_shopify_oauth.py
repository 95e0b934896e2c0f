"""
Shopify OAuth handshake tests
"""
import asyncio
import hashlib
import hmac
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from stock_counter.errors import ConfigurationMissing, HandshakeRejected, InvalidRequest, UpstreamError
from stock_counter.models import HandshakeState
from stock_counter.services.shopify_oauth import ShopifyOAuthService, generate_nonce

SECRET = "test-secret"


def sign(params, secret=SECRET):
    message = "&".join(f"{k}={params[k]}" for k in sorted(params) if k != "hmac")
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def callback_params(state="nonce-1", **extra):
    params = {
        "code": "auth-code",
        "shop": "panel-company.myshopify.com",
        "state": state,
        "timestamp": "1760000000",
    }
    params.update(extra)
    params["hmac"] = sign(params)
    return params


def _complete(shopify, service, params, stored_nonce):
    async def run():
        async with shopify.async_client() as client:
            return await service.complete_authorization(client, params, stored_nonce)
    return asyncio.run(run())


@pytest.fixture
def service():
    return ShopifyOAuthService(api_key="test-key", api_secret=SECRET)


class TestInstallUrl:
    def test_nonce_is_random_hex(self):
        a, b = generate_nonce(), generate_nonce()
        assert a != b
        assert len(bytes.fromhex(a)) == 16

    def test_install_url(self, service):
        url = service.get_install_url("panel-company", "https://app.example.com/api/auth/callback", state="abc")

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "panel-company.myshopify.com"
        assert parsed.path == "/admin/oauth/authorize"
        assert query["client_id"] == ["test-key"]
        assert query["scope"] == ["read_products,read_inventory,write_inventory,read_locations"]
        assert query["redirect_uri"] == ["https://app.example.com/api/auth/callback"]
        assert query["state"] == ["abc"]
        assert service.state == HandshakeState.NONCE_ISSUED

    def test_missing_api_key(self, monkeypatch):
        from stock_counter.config import settings
        monkeypatch.setattr(settings, "SHOPIFY_API_KEY", "")

        with pytest.raises(ConfigurationMissing):
            ShopifyOAuthService().get_install_url("panel-company", "https://x.example.com/cb", state="abc")

    @pytest.mark.parametrize("shop", ["evil.com", "panel-company.myshopify.com.evil.com", "a/b.myshopify.com", ""])
    def test_rejects_foreign_shop_domains(self, service, shop):
        with pytest.raises(InvalidRequest):
            service.normalize_shop_domain(shop)

    def test_normalizes_shop_domain(self, service):
        assert service.normalize_shop_domain("https://Panel-Company.myshopify.com/") == "panel-company.myshopify.com"


class TestHmac:
    def test_valid_signature(self, service):
        assert service.verify_hmac(callback_params())

    def test_tampered_parameter(self, service):
        params = callback_params()
        params["shop"] = "other-shop.myshopify.com"
        assert not service.verify_hmac(params)

    def test_missing_hmac(self, service):
        params = callback_params()
        del params["hmac"]
        assert not service.verify_hmac(params)


class TestCompleteAuthorization:
    def test_success_exchanges_code(self, shopify, service):
        shopify.queue(httpx.Response(200, json={"access_token": "shpat_new", "scope": "read_products"}))

        credential = _complete(shopify, service, callback_params(), "nonce-1")

        assert credential.shop == "panel-company.myshopify.com"
        assert credential.access_token == "shpat_new"
        assert service.state == HandshakeState.AUTHENTICATED
        assert len(shopify.requests) == 1
        request = shopify.requests[0]
        assert str(request.url) == "https://panel-company.myshopify.com/admin/oauth/access_token"
        assert shopify.bodies()[0] == {"client_id": "test-key", "client_secret": SECRET, "code": "auth-code"}

    def test_state_mismatch_rejected_before_exchange(self, shopify, service):
        with pytest.raises(HandshakeRejected) as exc_info:
            _complete(shopify, service, callback_params(state="forged"), "nonce-1")

        assert exc_info.value.message == "Invalid state parameter"
        assert service.state == HandshakeState.REJECTED
        assert shopify.requests == []

    def test_missing_nonce_cookie_rejected(self, shopify, service):
        with pytest.raises(HandshakeRejected):
            _complete(shopify, service, callback_params(), None)

        assert shopify.requests == []

    def test_tampered_hmac_rejected_before_exchange(self, shopify, service):
        params = callback_params()
        params["hmac"] = "0" * 64

        with pytest.raises(HandshakeRejected) as exc_info:
            _complete(shopify, service, params, "nonce-1")

        assert exc_info.value.message == "Invalid HMAC"
        assert shopify.requests == []

    def test_hmac_optional(self, shopify, service):
        shopify.queue(httpx.Response(200, json={"access_token": "shpat_new"}))
        params = callback_params()
        del params["hmac"]

        credential = _complete(shopify, service, params, "nonce-1")

        assert credential.access_token == "shpat_new"

    def test_missing_parameters(self, shopify, service):
        with pytest.raises(InvalidRequest):
            _complete(shopify, service, {"shop": "panel-company.myshopify.com", "state": "nonce-1"}, "nonce-1")

    def test_exchange_failure_not_retried(self, shopify, service):
        shopify.queue(httpx.Response(400, json={"error": "invalid_request"}))

        with pytest.raises(UpstreamError) as exc_info:
            _complete(shopify, service, callback_params(), "nonce-1")

        assert exc_info.value.message == "Failed to get access token"
        assert len(shopify.requests) == 1
        assert service.state == HandshakeState.REJECTED

    def test_exchange_without_token(self, shopify, service):
        shopify.queue(httpx.Response(200, json={"scope": "read_products"}))

        with pytest.raises(UpstreamError):
            _complete(shopify, service, callback_params(), "nonce-1")

    def test_missing_secret(self, shopify, monkeypatch):
        from stock_counter.config import settings
        monkeypatch.setattr(settings, "SHOPIFY_API_SECRET", "")

        with pytest.raises(ConfigurationMissing):
            _complete(shopify, ShopifyOAuthService(), callback_params(), "nonce-1")

    def test_missing_parameters_reported_before_configuration(self, shopify, monkeypatch):
        from stock_counter.config import settings
        monkeypatch.setattr(settings, "SHOPIFY_API_SECRET", "")

        with pytest.raises(InvalidRequest) as exc_info:
            _complete(shopify, ShopifyOAuthService(), {"shop": "panel-company.myshopify.com"}, None)

        assert exc_info.value.message == "Missing required parameters"
        assert shopify.requests == []
