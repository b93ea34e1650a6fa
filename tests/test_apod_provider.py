"""Tests for the APOD upstream client."""

from datetime import date

import httpx
import pytest

from apodcache.app.exceptions import (
    FetchError,
    FetchTimeoutError,
    MalformedResponseError,
    TransportError,
    UpstreamStatusError,
)
from apodcache.app.providers.apod import (
    ApodProvider,
    parse_rate_limit_remaining,
    parse_records,
)
from apodcache.app.services.ranges import DateRange, Record

BASE_URL = "https://api.nasa.gov/planetary/apod"

JAN = DateRange(date(2021, 1, 1), date(2021, 1, 2))

PAYLOAD = [
    {"date": "2021-01-01", "url": "https://apod.nasa.gov/apod/image/a.jpg", "title": "A"},
    {"date": "2021-01-02", "url": "https://apod.nasa.gov/apod/image/b.jpg", "title": "B"},
]


@pytest.fixture
def provider():
    return ApodProvider(BASE_URL, timeout=5.0)


class TestFetch:
    """Test a single ranged APOD call."""

    @pytest.mark.asyncio
    async def test_success(self, provider, respx_mock):
        route = respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                200, json=PAYLOAD, headers={"X-RateLimit-Remaining": "998"}
            )
        )

        result = await provider.fetch(JAN, "DEMO_KEY")

        assert result.records == [
            Record("2021-01-01", "https://apod.nasa.gov/apod/image/a.jpg"),
            Record("2021-01-02", "https://apod.nasa.gov/apod/image/b.jpg"),
        ]
        assert result.rate_limit_remaining == 998

        params = route.calls.last.request.url.params
        assert params["api_key"] == "DEMO_KEY"
        assert params["start_date"] == "2021-01-01"
        assert params["end_date"] == "2021-01-02"
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_uses_shared_client(self, respx_mock):
        respx_mock.get(BASE_URL).mock(return_value=httpx.Response(200, json=[]))

        async with httpx.AsyncClient() as client:
            provider = ApodProvider(BASE_URL, http_client=client)
            result = await provider.fetch(JAN, "key")
            assert not client.is_closed

        assert provider.http_client is client
        assert result.records == []

    @pytest.mark.asyncio
    async def test_missing_rate_limit_header(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(return_value=httpx.Response(200, json=PAYLOAD))

        result = await provider.fetch(JAN, "DEMO_KEY")

        assert result.rate_limit_remaining is None
        assert len(result.records) == 2

    @pytest.mark.asyncio
    async def test_entries_without_url_are_skipped(self, provider, respx_mock):
        payload = [PAYLOAD[0], {"date": "2021-01-02", "media_type": "other"}]
        respx_mock.get(BASE_URL).mock(return_value=httpx.Response(200, json=payload))

        result = await provider.fetch(JAN, "DEMO_KEY")

        assert [r.date for r in result.records] == ["2021-01-01"]

    @pytest.mark.asyncio
    async def test_timeout(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(FetchTimeoutError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_connection_error(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransportError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert isinstance(exc_info.value, FetchError)
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_non_json_body(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(MalformedResponseError):
            await provider.fetch(JAN, "DEMO_KEY")

    @pytest.mark.asyncio
    async def test_bad_body_still_reports_rate_limit(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                200, text="<html>oops</html>", headers={"X-RateLimit-Remaining": "0"}
            )
        )

        with pytest.raises(MalformedResponseError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert exc_info.value.response_received is True
        assert exc_info.value.rate_limit_remaining == 0

    @pytest.mark.asyncio
    async def test_bad_entry_still_reports_rate_limit(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                200,
                json=[{"date": "2021-1-1", "url": "https://apod.nasa.gov/apod/image/a.jpg"}],
                headers={"X-RateLimit-Remaining": "17"},
            )
        )

        with pytest.raises(MalformedResponseError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert exc_info.value.rate_limit_remaining == 17

    @pytest.mark.asyncio
    async def test_network_errors_have_no_response(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransportError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert exc_info.value.response_received is False
        assert exc_info.value.rate_limit_remaining is None

    @pytest.mark.asyncio
    async def test_non_integer_rate_limit_header(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                200, json=PAYLOAD, headers={"X-RateLimit-Remaining": "lots"}
            )
        )

        with pytest.raises(MalformedResponseError):
            await provider.fetch(JAN, "DEMO_KEY")

    @pytest.mark.asyncio
    async def test_error_status_carries_rate_limit(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                429,
                json={"error": {"code": "OVER_RATE_LIMIT", "message": "You have exceeded your rate limit."}},
                headers={"X-RateLimit-Remaining": "0"},
            )
        )

        with pytest.raises(UpstreamStatusError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        exc = exc_info.value
        assert exc.upstream_status == 429
        assert exc.rate_limit_remaining == 0
        assert "exceeded your rate limit" in exc.message
        assert exc.to_response()["upstream_status"] == 429

    @pytest.mark.asyncio
    async def test_error_status_ignores_bad_header(self, provider, respx_mock):
        respx_mock.get(BASE_URL).mock(
            return_value=httpx.Response(
                500, text="Internal error", headers={"X-RateLimit-Remaining": "n/a"}
            )
        )

        with pytest.raises(UpstreamStatusError) as exc_info:
            await provider.fetch(JAN, "DEMO_KEY")

        assert exc_info.value.upstream_status == 500
        assert exc_info.value.rate_limit_remaining is None


class TestParsing:
    """Test body and header parsing helpers."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"date": "2021-01-01", "url": "x"},
            [{"url": "x"}],
            [{"date": 20210101, "url": "x"}],
            [{"date": "2021-01-01", "url": 42}],
            ["2021-01-01"],
            [{"date": "2021-1-1", "url": "x"}],
            [{"date": "2021-01-01T00:00:00", "url": "x"}],
            [{"date": "2021-02-30", "url": "x"}],
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedResponseError):
            parse_records(payload)

    def test_date_outside_requested_range(self):
        payload = [{"date": "2021-01-03", "url": "x"}]

        assert parse_records(payload) == [Record("2021-01-03", "x")]
        with pytest.raises(MalformedResponseError):
            parse_records(payload, JAN)

    def test_empty_array(self):
        assert parse_records([]) == []

    def test_rate_limit_header(self):
        assert parse_rate_limit_remaining(httpx.Headers({"X-RateLimit-Remaining": " 12 "})) == 12
        assert parse_rate_limit_remaining(httpx.Headers({"x-ratelimit-remaining": "0"})) == 0
        assert parse_rate_limit_remaining(httpx.Headers()) is None

    def test_negative_rate_limit_header(self):
        with pytest.raises(MalformedResponseError):
            parse_rate_limit_remaining(httpx.Headers({"X-RateLimit-Remaining": "-1"}))
