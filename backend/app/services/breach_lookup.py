# backend/app/services/breach_lookup.py
"""
Pwned Passwords range client (k-anonymity).

Only the 5-char SHA-1 prefix is sent. The corpus answers with every
suffix sharing that prefix as ``SUFFIX:COUNT`` lines, and the match is
found locally. There is no retry here: callers own retry policy, and a
failed query is always LookupUnavailable, never "not breached".
"""
import logging
from typing import Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import LookupUnavailable, ValidationFailure
from backend.app.schemas.breach import LookupResult
from backend.app.security.password_hash import HEX_DIGITS, PREFIX_LENGTH, split_password_hash
from backend.app.services.severity import classify_severity

logger = logging.getLogger(__name__)


def find_suffix_count(body: str, suffix: str) -> int:
    """
    Return the count for ``suffix`` in a range response body, 0 if absent.

    Comparison is case-insensitive. Malformed lines for other suffixes are
    skipped, but an unreadable count on the matching line raises
    LookupUnavailable: the password is in the corpus, so 0 would be a lie.
    """
    target = suffix.strip().upper()
    for line in body.splitlines():
        hash_suffix, sep, count = line.strip().partition(":")
        if not sep or hash_suffix.upper() != target:
            continue
        try:
            return int(count.strip())
        except ValueError as exc:
            logger.warning("Malformed count in range response line for matching suffix")
            raise LookupUnavailable("Breach lookup returned a malformed count") from exc
    return 0


class PwnedPasswordsClient:
    """
    Async client for ``GET <base>/<PREFIX>``.

    ``transport`` is only for injecting an httpx transport in tests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        user_agent: Optional[str] = None,
        source_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.PWNED_PASSWORDS_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.BREACH_LOOKUP_TIMEOUT_SECONDS
        self.api_key = api_key if api_key is not None else settings.HIBP_API_KEY
        self.source_name = source_name or settings.BREACH_SOURCE_NAME
        self.transport = transport

        self.headers = {"user-agent": user_agent or settings.BREACH_LOOKUP_USER_AGENT}
        if self.api_key:
            self.headers["hibp-api-key"] = self.api_key

    async def fetch_range(self, prefix: str) -> str:
        prefix = prefix.upper()
        if len(prefix) != PREFIX_LENGTH or not set(prefix) <= HEX_DIGITS:
            raise ValidationFailure(f"Hash prefix must be {PREFIX_LENGTH} hex characters")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.get(f"{self.base_url}/{prefix}", headers=self.headers)
        except httpx.TimeoutException as exc:
            logger.warning("Breach lookup timed out for prefix %s", prefix)
            raise LookupUnavailable("Breach lookup timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Breach lookup failed for prefix %s: %s", prefix, exc)
            raise LookupUnavailable("Breach lookup service unreachable") from exc

        if not resp.is_success:
            logger.warning(
                "Breach lookup returned HTTP %s for prefix %s", resp.status_code, prefix
            )
            raise LookupUnavailable(
                f"Breach lookup service returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        return resp.text

    async def lookup(self, prefix: str, suffix: str) -> LookupResult:
        body = await self.fetch_range(prefix)
        count = find_suffix_count(body, suffix)

        # Padding entries come back with a count of 0
        if count <= 0:
            return LookupResult(breached=False, count=0, severity=None, source_name=self.source_name)

        return LookupResult(
            breached=True,
            count=count,
            severity=classify_severity(count),
            source_name=self.source_name,
        )

    async def check_password(self, password: str) -> LookupResult:
        """Password must NEVER be stored or logged."""
        split = split_password_hash(password)
        return await self.lookup(split.prefix, split.suffix)
