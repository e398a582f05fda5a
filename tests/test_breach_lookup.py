import httpx
import pytest

from backend.app.core.errors import LookupUnavailable, ValidationFailure
from backend.app.services.breach_lookup import PwnedPasswordsClient, find_suffix_count
from backend.app.services.severity import Severity

from conftest import PASSWORD, PREFIX, SUFFIX, range_body, range_transport

BASE_URL = "https://corpus.test/range"


def make_client(transport, **kwargs) -> PwnedPasswordsClient:
    return PwnedPasswordsClient(
        base_url=BASE_URL,
        timeout=1.0,
        api_key=kwargs.pop("api_key", ""),
        user_agent="BreachWatch-Test",
        source_name="HaveIBeenPwned",
        transport=transport,
        **kwargs,
    )


class TestFindSuffixCount:

    def test_match_is_case_insensitive(self):
        body = range_body(f"{SUFFIX.lower()}:42")
        assert find_suffix_count(body, SUFFIX) == 42

    def test_missing_suffix_returns_zero(self):
        assert find_suffix_count(range_body(), SUFFIX) == 0

    def test_malformed_lines_are_skipped(self):
        body = "garbage\n\n:::\n" + f"{SUFFIX}:7"
        assert find_suffix_count(body, SUFFIX) == 7

    def test_other_suffix_with_bad_count_is_skipped(self):
        body = range_body("00000000000000000000000000000000000:oops", f"{SUFFIX}:3")
        assert find_suffix_count(body, SUFFIX) == 3

    def test_matching_suffix_with_bad_count_is_unavailable(self):
        body = range_body(f"{SUFFIX}:garbage")
        with pytest.raises(LookupUnavailable):
            find_suffix_count(body, SUFFIX)


class TestPwnedPasswordsClient:

    async def test_breached_password_example(self):
        client = make_client(range_transport(range_body(f"{SUFFIX}:1489")))

        result = await client.lookup(PREFIX, SUFFIX)

        assert result.breached is True
        assert result.count == 1489
        assert result.severity == Severity.MEDIUM
        assert result.source_name == "HaveIBeenPwned"

    async def test_only_prefix_is_sent(self):
        calls = []
        client = make_client(range_transport(range_body(), calls=calls))

        await client.check_password(PASSWORD)

        assert len(calls) == 1
        request = calls[0]
        assert request.url.path == f"/range/{PREFIX}"
        assert SUFFIX not in str(request.url)
        assert request.headers["user-agent"] == "BreachWatch-Test"
        assert "hibp-api-key" not in request.headers

    async def test_api_key_header_is_optional(self):
        calls = []
        client = make_client(range_transport(range_body(), calls=calls), api_key="secret")

        await client.lookup(PREFIX, SUFFIX)

        assert calls[0].headers["hibp-api-key"] == "secret"

    async def test_not_breached(self):
        client = make_client(range_transport(range_body()))

        result = await client.lookup(PREFIX, SUFFIX)

        assert result.breached is False
        assert result.count == 0
        assert result.severity is None

    async def test_padding_entry_is_not_breached(self):
        client = make_client(range_transport(range_body(f"{SUFFIX}:0")))

        result = await client.lookup(PREFIX, SUFFIX)

        assert result.breached is False

    async def test_unreadable_count_is_never_safe(self):
        client = make_client(range_transport(range_body(f"{SUFFIX}:garbage")))

        with pytest.raises(LookupUnavailable) as exc_info:
            await client.lookup(PREFIX, SUFFIX)

        assert exc_info.value.retryable is True

    @pytest.mark.parametrize("status_code", [404, 429, 500, 503])
    async def test_non_2xx_is_lookup_unavailable(self, status_code):
        client = make_client(range_transport("", status_code=status_code))

        with pytest.raises(LookupUnavailable) as exc_info:
            await client.lookup(PREFIX, SUFFIX)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.retryable is True

    async def test_timeout_is_lookup_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(httpx.MockTransport(handler))

        with pytest.raises(LookupUnavailable):
            await client.lookup(PREFIX, SUFFIX)

    async def test_connection_error_is_lookup_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(httpx.MockTransport(handler))

        with pytest.raises(LookupUnavailable):
            await client.lookup(PREFIX, SUFFIX)

    @pytest.mark.parametrize("prefix", ["", "ABC", "CBFDAC", "GGGGG"])
    async def test_invalid_prefix_rejected_before_request(self, prefix):
        calls = []
        client = make_client(range_transport(range_body(), calls=calls))

        with pytest.raises(ValidationFailure):
            await client.lookup(prefix, SUFFIX)

        assert calls == []
