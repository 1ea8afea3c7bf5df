from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from .config import ConnectionConfig
from .models import Lookback

LOGSTASH_INDEX_PREFIX = "logstash-"
LOGSTASH_INDEX_FORMAT = "%Y.%m.%d"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_epoch_millis(moment: datetime) -> int:
    return int(_as_utc(moment).timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def lookback_millis(lookback: Lookback) -> int:
    return lookback.to_millis()


def past_timestamp_millis(now: datetime, lookback: Lookback) -> int:
    return to_epoch_millis(now) - lookback_millis(lookback)


def logstash_index_name(day: date | datetime) -> str:
    if isinstance(day, datetime):
        day = _as_utc(day).date()
    return LOGSTASH_INDEX_PREFIX + day.strftime(LOGSTASH_INDEX_FORMAT)


def build_logstash_indexes(now: datetime, past_millis: int) -> list[str]:
    """Daily index names from today back to the day of ``past_millis``.

    Newest first, both ends inclusive. Only the days covered by the window
    are searched rather than every index in the cluster.
    """
    current = _as_utc(now).date()
    oldest = from_epoch_millis(past_millis).date()
    names = [logstash_index_name(current)]
    while current > oldest:
        current -= timedelta(days=1)
        names.append(logstash_index_name(current))
    return names


def resolve_indexes(config: ConnectionConfig, now: datetime, past_millis: int) -> str:
    """Comma-joined indexes to query; an explicit override wins verbatim."""
    override = config.explicit_indexes
    if override is not None:
        return override
    return ",".join(build_logstash_indexes(now, past_millis))
