"""Shared HTTP helpers.

Encapsulates request timeout, retry and caching behavior so callers avoid
duplicating try/except blocks. Failures are reported through the returned
status code (0 when no response was received) rather than by raising.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer

logger = logging.getLogger(__name__)


# Simple in-memory cache for HTTP responses
_http_cache: Dict[str, Tuple[Any, float]] = {}


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float]) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    return time.time() - cached_time < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    _http_cache.clear()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, retries, and caching with DEBUG traces."""
    cache_key = _get_cache_key('GET', url, headers)

    if cache_key in _http_cache and _is_cache_valid(_http_cache[cache_key]):
        cached_data, _ = _http_cache[cache_key]
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="http_client",
                    action="GET",
                    target=url
                )
            )
        return cached_data

    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            try:
                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )

                if response.status_code < 500:  # Don't cache server errors
                    cache_data = (response.status_code, dict(response.headers), response.text)
                    _http_cache[cache_key] = (cache_data, time.time())

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response ok",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=url,
                            attempt=attempt + 1
                        )
                    )
                return response.status_code, dict(response.headers), response.text

            except requests.Timeout:
                last_exception = "timeout"
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=url
                        )
                    )
                continue

    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_text(url: str, **kwargs: Any) -> Optional[str]:
    """Return the body of a successful GET, or None."""
    status_code, _, text = robust_get(url, **kwargs)
    if status_code == 200:
        return text
    logger.debug("GET %s returned status %s", url, status_code)
    return None
