# backend/tests/test_turnstile.py
import httpx
import pytest

from waitlist.human.turnstile import TurnstileVerifier
from waitlist.settings import settings

VERIFY_URL = "https://turnstile.test/siteverify"


def make_verifier(handler, secret: str | None = "secret-key") -> TurnstileVerifier:
    return TurnstileVerifier(
        secret_key=secret,
        verify_url=VERIFY_URL,
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


async def test_accepted_token_posts_form():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True})

    assert await make_verifier(handler).verify("real-token", "203.0.113.9") is True
    assert "secret=secret-key" in seen["body"]
    assert "response=real-token" in seen["body"]
    assert "remoteip=203.0.113.9" in seen["body"]


async def test_rejected_token():
    verifier = make_verifier(lambda request: httpx.Response(200, json={"success": False, "error-codes": ["invalid-input-response"]}))
    assert await verifier.verify("real-token") is False


async def test_http_error_fails_closed():
    verifier = make_verifier(lambda request: httpx.Response(500, text="boom"))
    assert await verifier.verify("real-token") is False


async def test_network_error_fails_closed():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert await make_verifier(handler).verify("real-token") is False


async def test_malformed_response_fails_closed():
    verifier = make_verifier(lambda request: httpx.Response(200, text="<html>"))
    assert await verifier.verify("real-token") is False


async def test_missing_secret_fails_closed():
    def handler(request):
        raise AssertionError("no request expected")

    assert await make_verifier(handler, secret="").verify("real-token") is False


async def test_missing_token():
    def handler(request):
        raise AssertionError("no request expected")

    assert await make_verifier(handler).verify(None) is False
    assert await make_verifier(handler).verify("") is False


async def test_bypass_outside_production(monkeypatch):
    monkeypatch.setattr(settings, "env", "development")

    def handler(request):
        raise AssertionError("no request expected")

    assert await make_verifier(handler, secret=None).verify(settings.turnstile_bypass_token) is True


async def test_bypass_disabled_in_production(monkeypatch):
    monkeypatch.setattr(settings, "env", "production")
    verifier = make_verifier(lambda request: httpx.Response(200, json={"success": False}))

    assert verifier.bypass_allowed(settings.turnstile_bypass_token) is False
    assert await verifier.verify(settings.turnstile_bypass_token) is False
