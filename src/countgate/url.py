from __future__ import annotations

from urllib.parse import quote, quote_plus, urlsplit, urlunsplit

from .config import ConnectionConfig
from .errors import EncodingError
from .models import QuerySpec

TIMESTAMP_FIELD = "@timestamp"


def date_clause(past_millis: int) -> str:
    return f" AND {TIMESTAMP_FIELD}:>={past_millis}"


def encode_query(text: str) -> str:
    """Form-encode ``text`` as a single query-string value."""
    try:
        return quote_plus(text, safe="", encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Unable to URL-encode query {text!r}: {exc}") from exc


def _userinfo(config: ConnectionConfig) -> str:
    creds = config.credentials
    if creds is None:
        return ""
    user, password = creds
    try:
        return f"{quote(user, safe='')}:{quote(password, safe='')}@"
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Unable to URL-encode credentials: {exc}") from exc


def build_count_url(
    config: ConnectionConfig,
    spec: QuerySpec,
    past_millis: int,
    indexes: str,
) -> str:
    host = config.host.strip().rstrip("/")
    q = encode_query(spec.query + date_clause(past_millis))
    return f"{config.scheme}://{_userinfo(config)}{host}/{indexes}/_count?pretty=true&q={q}"


def search_url(count_url: str) -> str:
    """Same request against ``_search`` so the matching documents can be inspected."""
    return count_url.replace("/_count?", "/_search?", 1)


def mask_url(url: str) -> str:
    """Hide the password of a URL carrying userinfo."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.rsplit("@", 1)[1]
    user = parts.netloc.rsplit("@", 1)[0].split(":", 1)[0]
    return urlunsplit((parts.scheme, f"{user}:****@{netloc}", parts.path, parts.query, parts.fragment))
