from __future__ import annotations

from .models import Comparison, EvaluationResult, QuerySpec


def threshold_exceeded(count: int, threshold: int, comparison: Comparison) -> bool:
    if comparison is Comparison.GTE:
        return count >= threshold
    return count <= threshold


def diagnostic_message(
    count: int,
    threshold: int,
    comparison: Comparison,
    url: str,
    content: str,
) -> str:
    return (
        f"Count: {count} is {comparison.symbol} {threshold}. Failing build!\n"
        f"URL: {url}\n"
        f"response content: {content}"
    )


def evaluate(count: int, spec: QuerySpec, url: str = "", content: str = "") -> EvaluationResult:
    """Apply ``spec.comparison`` to ``count``.

    The diagnostic message is only filled in when the threshold is exceeded.
    ``url`` is embedded as given; the gate passes it with the password masked.
    """
    exceeded = threshold_exceeded(count, spec.threshold, spec.comparison)
    message = diagnostic_message(count, spec.threshold, spec.comparison, url, content) if exceeded else ""
    return EvaluationResult(
        count=count,
        threshold_exceeded=exceeded,
        diagnostic_message=message,
        url=url,
        content=content,
    )
