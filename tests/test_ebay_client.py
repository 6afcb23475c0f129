"""Tests for the eBay Browse API client."""

import httpx
import pytest

from app.services.ebay_client import EbayBrowseClient, _parse_retry_after


def _client(handler) -> EbayBrowseClient:
    return EbayBrowseClient(
        base_url="https://api.test",
        marketplace_id="EBAY_US",
        result_limit=25,
        transport=httpx.MockTransport(handler),
    )


class TestSearch:
    """Tests for EbayBrowseClient.search."""

    @pytest.mark.asyncio
    async def test_success_passes_payload_through(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["headers"] = request.headers
            return httpx.Response(200, json={"total": 1, "itemSummaries": [{"title": "Charizard"}]})

        client = _client(handler)
        result = await client.search("charizard", False, "tok-123")
        await client.close()

        assert result.ok is True
        assert result.payload == {"total": 1, "itemSummaries": [{"title": "Charizard"}]}
        assert seen["url"].path == "/buy/browse/v1/item_summary/search"
        assert seen["url"].params["q"] == "charizard"
        assert seen["url"].params["limit"] == "25"
        assert "filter" not in seen["url"].params
        assert seen["headers"]["Authorization"] == "Bearer tok-123"
        assert seen["headers"]["X-EBAY-C-MARKETPLACE-ID"] == "EBAY_US"

    @pytest.mark.asyncio
    async def test_filter_flag_adds_fixed_price_filter(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.search("charizard", True, "tok")
        await client.close()

        assert seen["params"]["filter"] == "buyingOptions:{FIXED_PRICE}"

    @pytest.mark.asyncio
    async def test_429_is_retryable_with_retry_after(self):
        client = _client(lambda r: httpx.Response(429, headers={"Retry-After": "4"}))

        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.ok is False
        assert result.retryable is True
        assert result.retry_after == 4.0

    @pytest.mark.asyncio
    async def test_5xx_is_retryable(self):
        client = _client(lambda r: httpx.Response(503))

        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.retryable is True
        assert result.detail == "Server error (503)"

    @pytest.mark.asyncio
    async def test_4xx_is_terminal_with_body(self):
        client = _client(lambda r: httpx.Response(400, text='{"errors":[{"errorId":12001}]}'))

        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.ok is False
        assert result.retryable is False
        assert "12001" in result.detail

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        client = _client(handler)
        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.ok is False
        assert result.retryable is True
        assert "timeout" in result.detail

    @pytest.mark.asyncio
    async def test_connect_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.retryable is True
        assert "refused" in result.detail

    @pytest.mark.asyncio
    async def test_non_json_success_is_terminal(self):
        client = _client(lambda r: httpx.Response(200, text="<html>maintenance</html>"))

        result = await client.search("charizard", False, "tok")
        await client.close()

        assert result.ok is False
        assert result.retryable is False


class TestCheckRateLimits:
    """Tests for EbayBrowseClient.check_rate_limits."""

    @pytest.mark.asyncio
    async def test_returns_report(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json={"rateLimits": [{"apiName": "Browse"}]})

        client = _client(handler)
        result = await client.check_rate_limits("tok")
        await client.close()

        assert seen["path"] == "/developer/analytics/v1/rate_limit"
        assert result.payload == {"rateLimits": [{"apiName": "Browse"}]}


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    def test_seconds(self):
        assert _parse_retry_after("12") == 12.0

    def test_capped(self):
        assert _parse_retry_after("600", max_seconds=60) == 60

    @pytest.mark.parametrize("value", [None, "", "  ", "0", "-3", "soon"])
    def test_invalid_or_absent(self, value):
        assert _parse_retry_after(value) is None

    def test_past_http_date(self):
        assert _parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None
