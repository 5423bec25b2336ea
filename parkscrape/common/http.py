"""HTTP client with retries, timeouts, and per-host request throttling."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from parkscrape.common.constants import BROWSER_HEADERS, USER_AGENT
from parkscrape.common.errors import StageError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 30.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    multiplier: float = 1.0
    max_wait: float = 10.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


@dataclass(frozen=True)
class Page:
    """A fetched HTML page: the final request URL and its parsed document."""

    url: str
    soup: BeautifulSoup

    @classmethod
    def from_html(cls, url: str, html: str) -> "Page":
        return cls(url=url, soup=BeautifulSoup(html, "html.parser"))


@dataclass(frozen=True)
class JsonDocument:
    """A decoded JSON response and the URL it was finally served from."""

    url: str
    payload: Any


class TokenBucket:
    def __init__(self, rate_per_sec: float, capacity: float | None = None) -> None:
        self.rate_per_sec = rate_per_sec
        self.capacity = capacity if capacity is not None else rate_per_sec
        self.tokens = self.capacity
        self.updated_at = time.monotonic()
        self.lock = threading.Lock()

    def acquire(self, tokens: float = 1.0) -> None:
        while True:
            with self.lock:
                now = time.monotonic()
                elapsed = now - self.updated_at
                self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_sec)
                self.updated_at = now
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                deficit = tokens - self.tokens
                wait_for = max(deficit / self.rate_per_sec, 0.01)
            time.sleep(wait_for)


class HostThrottle:
    """Serialises requests per host with a fixed minimum delay between them."""

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self.buckets: dict[str, TokenBucket] = {}
        self.lock = threading.Lock()

    def acquire(self, host: str) -> None:
        if self.delay_seconds <= 0:
            return
        with self.lock:
            bucket = self.buckets.get(host)
            if bucket is None:
                # Capacity 1 means no bursts: one request per delay window.
                bucket = TokenBucket(rate_per_sec=1.0 / self.delay_seconds, capacity=1.0)
                self.buckets[host] = bucket
        bucket.acquire()


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        request_delay: float = 0.0,
        user_agent: str = USER_AGENT,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.user_agent = user_agent
        self.session = requests.Session()
        self.throttle = HostThrottle(request_delay)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _host(self, url: str) -> str:
        return urlparse(url).netloc

    def _headers(self, accept_json: bool) -> dict[str, str]:
        out = {"User-Agent": self.user_agent, **BROWSER_HEADERS}
        if accept_json:
            out["Accept"] = "application/json"
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status: {status}")
        if status >= 400:
            raise HttpRequestError(f"HTTP status: {status}")

    def _get(self, url: str, *, accept_json: bool = False) -> requests.Response:
        self.throttle.acquire(self._host(url))
        try:
            response = self.session.request(
                method="GET",
                url=url,
                headers=self._headers(accept_json),
                timeout=(self.timeout.connect, self.timeout.read),
            )
        except requests.RequestException as exc:
            raise RetryableHttpError(f"Transport failure for {url}: {exc}") from exc
        self._raise_for_status_or_retry(response)
        return response

    def _with_retry(self, func, *args: Any, **kwargs: Any):
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped():
            return func(*args, **kwargs)

        return _wrapped()

    def fetch_page(self, url: str) -> Page:
        """Single GET attempt; callers own the retry policy."""
        response = self._get(url)
        return Page.from_html(response.url or url, response.text)

    def get_page(self, url: str) -> Page:
        return self._with_retry(self.fetch_page, url)

    def _get_json(self, url: str) -> JsonDocument:
        response = self._get(url, accept_json=True)
        try:
            payload = response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc
        return JsonDocument(url=response.url or url, payload=payload)

    def get_json(self, url: str) -> JsonDocument:
        return self._with_retry(self._get_json, url)

    def post_json(self, url: str, payload: Any) -> requests.Response:
        """POST a JSON body once and hand back the raw response; status handling is the caller's."""
        try:
            return self.session.post(
                url,
                json=payload,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=(self.timeout.connect, self.timeout.read),
            )
        except requests.RequestException as exc:
            raise HttpRequestError(f"Transport failure for {url}: {exc}") from exc
