"""
Canonical query-string form for CloudStack request signing.

The service re-derives this string from the parameters it receives and only
accepts the request if the HMAC over it matches, so the output has to be
byte-for-byte what the service computes.

Rules:
- Every value is flattened to a single string first (lists comma-joined)
- Keys and values are percent-encoded like JavaScript's encodeURIComponent
- The entire encoded ``key=value`` pair is lower-cased, hex escapes included
- Pairs are ordered by the ordinal (byte) value of the folded key
- The ``signature`` parameter never takes part

Values containing any of ``!~*'()`` are sent and signed unescaped, exactly
as the browser console signed them with encodeURIComponent. Whether the
service's own re-encoding agrees for those characters has not been checked
against a live endpoint; avoid them in names where possible.
"""

from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Mapping, Tuple
from urllib.parse import quote

SIGNATURE_KEY = "signature"

# encodeURIComponent leaves these unescaped in addition to alphanumerics
_SAFE_CHARS = "-_.!~*'()"


def percent_encode(text: str) -> str:
    """Percent-encode ``text`` with upper-case hex escapes, space as %20."""
    return quote(text, safe=_SAFE_CHARS)


def encode_value(value: Any) -> str:
    """
    Flatten a parameter value to the string sent on the wire.

    Args:
        value: str, bool, int, float, date/datetime or a list/tuple/set of those

    Returns:
        Wire string (lists become comma-joined members)
    """
    if isinstance(value, str):
        return value

    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return str(value)

    if isinstance(value, datetime):
        return _format_datetime(value)

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (list, tuple, set, frozenset)):
        members = sorted(value) if isinstance(value, (set, frozenset)) else value
        return ",".join(encode_value(member) for member in members)

    raise TypeError(f"Unsupported parameter type: {type(value)}")


def fold_key(key: str) -> str:
    """Key as it appears in the canonical string."""
    return percent_encode(key).lower()


def canonical_pairs(params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Folded ``(key, value)`` pairs in signing order.

    The ``signature`` key is skipped whatever its case.
    """
    pairs = []
    for key, value in params.items():
        folded = fold_key(key)
        if folded == SIGNATURE_KEY:
            continue
        pairs.append((folded, percent_encode(encode_value(value)).lower()))

    pairs.sort(key=lambda pair: pair[0].encode("utf-8"))
    return pairs


def canonicalize(params: Mapping[str, Any]) -> str:
    """
    Canonicalize a parameter set to the string that gets signed.

    Args:
        params: Mapping of parameter name to value

    Returns:
        ``k1=v1&k2=v2...``, lower-cased and ordinally sorted; "" when empty
    """
    return "&".join(f"{key}={value}" for key, value in canonical_pairs(params))


def to_query_string(items: Iterable[Tuple[str, str]]) -> str:
    """Encode pairs for transmission (same encoder, case preserved)."""
    return "&".join(f"{percent_encode(key)}={percent_encode(value)}" for key, value in items)


def _format_datetime(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
