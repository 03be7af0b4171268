# product_search/sources/base_source.py

"""Base classes for every product source adapter."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from curl_cffi import requests as curl_requests

from product_search.config.settings import Settings
from product_search.models.product import Product, ScoredProduct
from product_search.models.search import SearchConstraints


class SourceAdapter(ABC):
    """One independent product source.

    ``search`` is best-effort: implementations log and return an
    empty list instead of letting transport or parsing errors out.
    """

    source_id: str = ""
    label: str = ""
    confidence: float = 0.5

    def __init__(self) -> None:
        self.logger = logging.getLogger(
            f"product_search.{self.source_id or 'source'}"
        )
        self.settings = Settings()

    @abstractmethod
    def search(
        self,
        query: str,
        constraints: SearchConstraints,
    ) -> list[ScoredProduct]:
        """Return candidate products for *query*."""
        ...

    def get_by_id(self, native_id: str) -> Product | None:
        """Fetch one product by the source's own id (SKU, ASIN, ...).

        Sources without a lookup endpoint return ``None``.
        """
        return None

    def is_configured(self) -> bool:
        """True when the adapter has what it needs to run."""
        return True

    def health_check(self) -> tuple[bool, str]:
        """Cheap reachability check; returns ``(ok, message)``."""
        return True, ""


class HttpSource(SourceAdapter):
    """Source backed by a JSON HTTP API.

    Wraps a browser-impersonating curl_cffi session with retries,
    adaptive back-off on 429/403 and a consecutive-failure circuit
    breaker that half-opens after ``CIRCUIT_BREAKER_COOLDOWN``.
    """

    HEALTH_URL: str = ""

    def __init__(self) -> None:
        super().__init__()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY
        self._consecutive_failures: int = 0
        self._circuit_open: bool = False
        self._circuit_opened_at: float = 0.0
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _check_circuit(self) -> bool:
        """Return True if the circuit breaker blocks this request."""
        if not self._circuit_open:
            return False
        elapsed = time.time() - self._circuit_opened_at
        if elapsed >= self.settings.CIRCUIT_BREAKER_COOLDOWN:
            self.logger.info(
                "[%s] Circuit breaker half-open after %.0fs",
                self.source_id,
                elapsed,
            )
            self._circuit_open = False
            return False
        return True

    def _record_success(self) -> None:
        """Reset failure counters after a successful fetch."""
        self._consecutive_failures = 0
        self._circuit_open = False
        self._circuit_opened_at = 0.0
        self._current_delay = self.settings.REQUEST_DELAY

    def _record_failure(self) -> None:
        """Track failure and open the circuit breaker if needed."""
        self._consecutive_failures += 1
        if (
            self._consecutive_failures
            >= self.settings.CIRCUIT_BREAKER_THRESHOLD
        ):
            self._circuit_open = True
            self._circuit_opened_at = time.time()
            self.logger.error(
                "[%s] Circuit breaker opened after %d "
                "consecutive failures",
                self.source_id,
                self._consecutive_failures,
            )

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "[%s] Rate-limited, delay escalated to %.1fs",
            self.source_id,
            self._current_delay,
        )

    def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        payload: str | None = None,
    ) -> curl_requests.Response | None:
        """Send a request with retries; ``None`` when all attempts fail."""
        if self._check_circuit():
            self.logger.info(
                "[%s] Circuit open, skipping request", self.source_id
            )
            return None
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                if method == "POST":
                    resp = self.session.post(
                        url,
                        headers=headers,
                        data=payload,
                        timeout=self._request_timeout,
                    )
                else:
                    resp = self.session.get(
                        url,
                        headers=headers,
                        timeout=self._request_timeout,
                    )
                if resp.status_code == 200:
                    self._record_success()
                    return resp
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d",
                    self.source_id,
                    resp.status_code,
                    attempt + 1,
                )
                if resp.status_code in (429, 403):
                    self._escalate_delay()
                    time.sleep(self._current_delay)
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_id,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
        self._record_failure()
        return None

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
    ) -> curl_requests.Response | None:
        """GET with retries, adaptive delay, and circuit breaker."""
        return self._request("GET", url, headers)

    def _fetch_post(
        self,
        url: str,
        headers: dict[str, str],
        payload: str,
    ) -> curl_requests.Response | None:
        """POST a pre-serialised body with the same resilience."""
        return self._request("POST", url, headers, payload)

    def health_check(self) -> tuple[bool, str]:
        """GET ``HEALTH_URL`` once, bypassing retries."""
        if not self.is_configured():
            return False, "Not configured"
        try:
            resp = self.session.get(
                self.HEALTH_URL,
                headers=self.settings.DEFAULT_HEADERS,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            return False, str(exc)[:80]
        # Auth-protected endpoints answer 4xx to a bare GET but are up
        if resp.status_code >= 500:
            return False, f"HTTP {resp.status_code}"
        return True, ""

    def _parse_each(
        self,
        raw_items: list[dict[str, Any]],
        parse: Callable[[dict[str, Any]], ScoredProduct],
    ) -> list[ScoredProduct]:
        """Parse API items one by one; a malformed item is skipped."""
        results: list[ScoredProduct] = []
        for raw in raw_items:
            try:
                results.append(parse(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self.logger.warning(
                    "[%s] Skipped malformed item: %s",
                    self.source_id,
                    exc,
                    exc_info=True,
                )
        return results

    @staticmethod
    def _as_float(value: Any) -> float | None:
        """Parse a numeric field, tolerating strings and blanks."""
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
