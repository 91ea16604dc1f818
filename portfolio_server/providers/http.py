"""Pooled HTTP GET helpers that fail with a normalized ``ProviderError``."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from portfolio_server.providers.models import AdapterId, FailureCode

LOGGER = logging.getLogger(__name__)

TRANSIENT_CODES = {408, 425, 429, 500, 502, 503, 504}
DEFAULT_USER_AGENT = "Portfolio-Dashboard/1.0"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_SESSION = requests.Session()
for _prefix in ("https://", "http://"):
    _SESSION.mount(_prefix, HTTPAdapter(pool_connections=10, pool_maxsize=20))


@dataclass
class ProviderError(Exception):
    provider: AdapterId
    code: FailureCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


def map_status_to_code(status: int) -> FailureCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def _backoff(attempt: int) -> None:
    time.sleep(0.25 * (2 ** (attempt - 1)))


def _transport_failure(provider: AdapterId, error: requests.RequestException, timeout_seconds: float) -> ProviderError:
    if isinstance(error, requests.Timeout):
        return ProviderError(provider, "TIMEOUT", f"Provider request timed out after {timeout_seconds}s.")
    return ProviderError(provider, "NETWORK", "Provider request failed due to network error.")


def _status_failure(provider: AdapterId, status: int) -> ProviderError:
    return ProviderError(provider, map_status_to_code(status), f"Provider request failed with status {status}.", status)


def _get(
    url: str,
    provider: AdapterId,
    timeout_seconds: float,
    headers: dict[str, str] | None,
    max_retries: int,
) -> requests.Response:
    """GET ``url``, retrying transport errors and transient statuses.

    ``max_retries`` is the total number of attempts. Non-transient statuses
    fail immediately.
    """
    attempts = max(1, max_retries)
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, **(headers or {})}
    for attempt in range(1, attempts + 1):
        cause: Exception | None = None
        try:
            response = _SESSION.get(url, timeout=timeout_seconds, headers=request_headers)
        except requests.RequestException as error:
            failure = _transport_failure(provider, error, timeout_seconds)
            cause = error
        else:
            if response.ok:
                return response
            failure = _status_failure(provider, response.status_code)
            if response.status_code not in TRANSIENT_CODES:
                raise failure
        if attempt == attempts:
            raise failure from cause
        LOGGER.debug("retrying provider request: provider=%s attempt=%s code=%s", provider, attempt, failure.code)
        _backoff(attempt)
    raise ProviderError(provider, "UPSTREAM", "Provider request failed.")


def fetch_json(
    url: str,
    provider: AdapterId,
    timeout_seconds: float = 10.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 2,
) -> Any:
    """GET a JSON document. An empty body decodes to ``{}``."""
    response = _get(url, provider, timeout_seconds, headers, max_retries)
    body = response.text or ""
    if not body:
        return {}
    try:
        return json.loads(body)
    except json.JSONDecodeError as error:
        raise ProviderError(provider, "BAD_RESPONSE", "Provider returned non-JSON content.", response.status_code) from error


def fetch_text(
    url: str,
    provider: AdapterId,
    timeout_seconds: float = 10.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 2,
) -> str:
    return _get(url, provider, timeout_seconds, headers, max_retries).text or ""
