from __future__ import annotations

import json
import logging
import math
import time

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import resolve_timeout_ms
from .errors import DecodeError, TransportError
from .models import FetchedCount
from .schemas import CountResponse
from .url import mask_url

log = logging.getLogger(__name__)


def _make_session() -> requests.Session:
    """Create session with connection pooling (no auto-retry - a failed count fails the gate)."""
    s = requests.Session()
    retry = Retry(total=0, backoff_factor=0)
    s.mount("http://", HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4))
    s.mount("https://", HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4))
    return s


def round_count(value: float) -> int:
    """Round half up, the way the count has always been rounded."""
    if not math.isfinite(value):
        raise DecodeError(f"Response count is not a finite number: {value}")
    return int(math.floor(value + 0.5))


def parse_count(content: str) -> int:
    """Extract the numeric ``count`` field from a ``_count`` response body."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Response is not valid JSON: {exc}. Body={content.strip()[:500]}") from exc
    if not isinstance(data, dict):
        raise DecodeError(f"Response is not a JSON object. Body={content.strip()[:500]}")
    try:
        parsed = CountResponse.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(
            f"Response missing numeric count field. Body={content.strip()[:500]}"
        ) from exc
    count = round_count(float(parsed.count))
    if count < 0:
        raise DecodeError(f"Response count is negative: {parsed.count}")
    return count


class CountFetcher:
    """Issues one bounded GET per call and decodes the count.

    There is no retry here; callers that want one wrap ``fetch``.
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or _make_session()

    def fetch(self, url: str, timeout_ms: int | None = None) -> FetchedCount:
        effective_ms = resolve_timeout_ms(timeout_ms)
        seconds = effective_ms / 1000
        timeout = (seconds, seconds)  # connect, read
        safe_url = mask_url(url)

        start_time = time.time()
        log.debug(f"GET {safe_url} timeout={effective_ms}ms")
        try:
            resp = self.session.get(url, timeout=timeout)
        except requests.Timeout as exc:
            raise TransportError(
                f"Count request timed out after {effective_ms}ms. URL={safe_url}"
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(
                f"Count request failed ({type(exc).__name__}). URL={safe_url} Error={exc}"
            ) from exc

        # Closing the response releases the connection back to the pool
        try:
            content = resp.text
            latency_ms = (time.time() - start_time) * 1000
            log.debug(f"Count response {resp.status_code} in {latency_ms:.0f}ms")
            if resp.status_code >= 400:
                raise TransportError(
                    f"Count request failed ({resp.status_code}). URL={safe_url} Body={content.strip()}"
                )
            return FetchedCount(count=parse_count(content), content=content)
        except requests.RequestException as exc:
            raise TransportError(
                f"Count response could not be read ({type(exc).__name__}). URL={safe_url}"
            ) from exc
        finally:
            resp.close()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> CountFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
