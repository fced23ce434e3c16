from __future__ import annotations

import json
import logging
import random
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import httpx

from tokenlist.config import ProviderConfig
from tokenlist.models.discovery import ProviderPage
from tokenlist.obs.logging import log_event
from tokenlist.provider.errors import (
    FatalHttpError,
    ProviderHttpError,
    RateLimitedError,
    TransientHttpError,
)

ITEM_LIST_KEYS = ("data", "result", "coins", "content")


@dataclass
class ProviderMetrics:
    http_requests_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_retries_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_latency_ms: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def record_request(self, endpoint: str, status: str, latency_ms: float) -> None:
        self.http_requests_total[(endpoint, status)] += 1
        self.http_latency_ms[endpoint].append(latency_ms)

    def record_retry(self, endpoint: str, reason: str) -> None:
        self.http_retries_total[(endpoint, reason)] += 1


class BlockberryClient:
    """Page provider backed by the Blockberry coins listing endpoint."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        api_key: str,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._run_id = run_id or "n/a"
        self._metrics = ProviderMetrics()
        timeout = httpx.Timeout(
            connect=config.timeout_s,
            read=config.timeout_s,
            write=config.timeout_s,
            pool=config.timeout_s,
        )
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=timeout,
            transport=transport,
            headers={"accept": "*/*", "x-api-key": api_key},
        )

    @property
    def metrics(self) -> ProviderMetrics:
        return self._metrics

    @property
    def max_page_size(self) -> int:
        return self._config.max_page_size

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BlockberryClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def fetch_page(self, page: int, page_size: int) -> ProviderPage:
        """Fetch 1-based ``page``; the endpoint itself counts pages from zero."""
        if page < 1:
            raise ValueError("page must be >= 1")
        params = {
            "page": page - 1,
            "size": page_size,
            "orderBy": self._config.order_by,
            "sortBy": self._config.sort_by,
        }
        payload = self._request("GET", self._config.coins_path, params=params)
        return self._parse_page(payload)

    @staticmethod
    def _parse_page(payload: Any) -> ProviderPage:
        if not isinstance(payload, dict):
            raise FatalHttpError("coins response must be an object", payload=payload)

        items: Any = None
        for key in ITEM_LIST_KEYS:
            if key in payload and payload[key] is not None:
                items = payload[key]
                break
        if items is None:
            raise FatalHttpError(
                f"coins response has none of the item keys {list(ITEM_LIST_KEYS)}",
                payload=sorted(payload.keys()),
            )
        if not isinstance(items, list):
            raise FatalHttpError("coins response items must be a list", payload=type(items).__name__)

        pagination = payload.get("pagination")
        if not isinstance(pagination, dict):
            pagination = {}
        total_pages = _coerce_positive_int(payload.get("totalPages")) or _coerce_positive_int(
            pagination.get("pages")
        )
        total_count = _coerce_positive_int(payload.get("totalCount")) or _coerce_positive_int(
            pagination.get("total")
        )
        return ProviderPage(items=items, total_pages=total_pages, total_count=total_count)

    def _request(self, method: str, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        attempts = self._config.max_retries + 1

        for attempt in range(1, attempts + 1):
            start = time.monotonic()

            try:
                response = self._client.request(method, endpoint, params=params)
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(endpoint, str(response.status_code), latency_ms)
                log_event(
                    self._logger,
                    logging.INFO,
                    "http_request",
                    f"{method} {endpoint}",
                    endpoint=endpoint,
                    status=response.status_code,
                    attempt=attempt,
                    page=params.get("page") if params else None,
                    latency_ms=round(latency_ms, 2),
                    run_id=self._run_id,
                )

                if response.status_code == 429:
                    log_event(
                        self._logger,
                        logging.WARNING,
                        "api_rate_limited",
                        "Rate limit response received; backing off",
                        endpoint=endpoint,
                        attempt=attempt,
                        run_id=self._run_id,
                    )
                    if attempt < attempts:
                        self._metrics.record_retry(endpoint, "rate_limited")
                        self._backoff_sleep(attempt)
                        continue
                    raise RateLimitedError("Rate limit exceeded", status_code=429, response_text=response.text)

                if response.status_code >= 500:
                    log_event(
                        self._logger,
                        logging.WARNING,
                        "api_server_error",
                        "Server error response received; backing off",
                        endpoint=endpoint,
                        status=response.status_code,
                        attempt=attempt,
                        run_id=self._run_id,
                    )
                    if attempt < attempts:
                        self._metrics.record_retry(endpoint, "server_error")
                        self._backoff_sleep(attempt)
                        continue
                    raise TransientHttpError(
                        "Server error", status_code=response.status_code, response_text=response.text
                    )

                if response.status_code >= 400:
                    raise FatalHttpError(
                        "HTTP error", status_code=response.status_code, response_text=response.text
                    )

                try:
                    return response.json()
                except json.JSONDecodeError as exc:
                    raise FatalHttpError(
                        "Invalid JSON response", status_code=response.status_code, response_text=response.text
                    ) from exc

            except httpx.TimeoutException as exc:
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(endpoint, "timeout", latency_ms)
                if attempt < attempts:
                    self._metrics.record_retry(endpoint, "timeout")
                    self._backoff_sleep(attempt)
                    continue
                self._log_fail(endpoint, "timeout")
                raise TransientHttpError("Request timed out") from exc

            except httpx.RequestError as exc:
                latency_ms = (time.monotonic() - start) * 1000
                self._metrics.record_request(endpoint, "connection_error", latency_ms)
                if attempt < attempts:
                    self._metrics.record_retry(endpoint, "connection_error")
                    self._backoff_sleep(attempt)
                    continue
                self._log_fail(endpoint, "connection_error")
                raise TransientHttpError("Request failed", payload=str(exc)) from exc

            except ProviderHttpError as exc:
                self._log_fail(endpoint, type(exc).__name__)
                raise

        raise TransientHttpError("Request failed after retries")

    def _backoff_sleep(self, attempt: int) -> None:
        base = self._config.backoff_base_s
        capped = min(self._config.backoff_max_s, base * (2 ** (attempt - 1)))
        jitter = random.uniform(0, base)
        time.sleep(min(self._config.backoff_max_s, capped + jitter))

    def _log_fail(self, endpoint: str, error_type: str) -> None:
        log_event(
            self._logger,
            logging.ERROR,
            "http_fail",
            f"Request failed for {endpoint}",
            endpoint=endpoint,
            error_type=error_type,
            run_id=self._run_id,
        )


def _coerce_positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None
