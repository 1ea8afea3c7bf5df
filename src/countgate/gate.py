from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .config import ConnectionConfig, resolve_timeout_ms, validate_connection
from .errors import GateError, ThresholdExceeded
from .evaluate import evaluate
from .fetch import CountFetcher
from .indexes import from_epoch_millis, past_timestamp_millis, resolve_indexes
from .models import EvaluationResult, QuerySpec
from .run_log import log_run_end, log_run_start
from .url import build_count_url, mask_url, search_url

log = logging.getLogger(__name__)

BuildLog = Callable[[str], None]


def _default_build_log(line: str) -> None:
    log.info(line)


def new_run_id(now: datetime) -> str:
    return f"gate_{now.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


def run_gate(
    spec: QuerySpec,
    config: ConnectionConfig,
    *,
    now: datetime | None = None,
    fetcher: CountFetcher | None = None,
    build_log: BuildLog | None = None,
    run_log_path: Path | None = None,
) -> EvaluationResult:
    """
    Run the count query once and apply the threshold.

    Args:
        spec: What to count and the pass/fail rule
        config: Connection settings (read-only)
        now: Reference time for the lookback window (default: current UTC time)
        fetcher: Fetcher to use; one is created and closed here if omitted
        build_log: Line sink for the build log (default: module logger)
        run_log_path: Optional JSONL file recording each evaluation

    Returns:
        EvaluationResult when the threshold condition is not met. Its url,
        and the URL in any diagnostic message, have the password masked.

    Raises:
        ThresholdExceeded: count met the threshold condition
        ConfigError, EncodingError, TransportError, DecodeError: fatal errors
    """
    echo = build_log or _default_build_log
    now = now or datetime.now(timezone.utc)
    run_id = new_run_id(now)

    echo(f"Query: {spec.query}")
    echo(f"Fail when: {spec.comparison.value}")
    echo(f"Threshold: {spec.threshold}")
    echo(f"Since: {spec.lookback.magnitude}")
    echo(f"Time units: {spec.lookback.unit.value}")

    validate_connection(config)
    echo(f"host: {config.host}")

    if run_log_path is not None:
        log_run_start(run_log_path, run_id, spec.query, spec.comparison.value, spec.threshold)

    try:
        result = _evaluate(spec, config, now, fetcher, echo)
    except ThresholdExceeded as exc:
        if run_log_path is not None:
            log_run_end(run_log_path, run_id, "failed", count=exc.result.count, url=exc.result.url)
        raise
    except GateError as exc:
        if run_log_path is not None:
            log_run_end(run_log_path, run_id, "error", error=str(exc))
        raise

    if run_log_path is not None:
        log_run_end(run_log_path, run_id, "passed", count=result.count, url=result.url)
    return result


def _evaluate(
    spec: QuerySpec,
    config: ConnectionConfig,
    now: datetime,
    fetcher: CountFetcher | None,
    echo: BuildLog,
) -> EvaluationResult:
    past = past_timestamp_millis(now, spec.lookback)
    log.debug(f"Lookback window starts at {from_epoch_millis(past).isoformat()}")

    indexes = resolve_indexes(config, now, past)
    echo(f"queryIndexes: {indexes}")

    url = build_count_url(config, spec, past, indexes)
    safe_url = mask_url(url)
    echo(f"query url: {safe_url}")

    owned = fetcher is None
    fetcher = fetcher or CountFetcher()
    try:
        fetched = fetcher.fetch(url, resolve_timeout_ms(config.request_timeout_ms))
    finally:
        if owned:
            fetcher.close()

    echo(f"content: {fetched.content}")
    echo(f"count: {fetched.count}")
    echo(f"search url: {search_url(safe_url)}")

    result = evaluate(fetched.count, spec, safe_url, fetched.content)
    if result.threshold_exceeded:
        raise ThresholdExceeded(result)
    return result
