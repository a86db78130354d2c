# =============================================================================
# Expiration Policy
# =============================================================================
#
# Turns the caller's "expiration" field into an absolute timestamp.
#
#   None / ""      → now + default lifetime
#   "3h", "1h30m"  → now + parsed duration (must be > 0)
#   anything else  → InvalidExpirationError
#
# Durations use the compact unit grammar clients of this API already send:
# an optional sign followed by one or more <decimal><unit> terms, with units
# ns, us (µs, μs), ms, s, m, h. A bare "0" is also accepted (and then
# rejected as non-positive by resolve_expiration).
# =============================================================================

from __future__ import annotations

import re
from datetime import datetime, timedelta
from decimal import Decimal

from accountkeys.services.errors import InvalidExpirationError

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}

_TERM = r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"([+-]?)((?:{_TERM})+)")
_TERM_RE = re.compile(_TERM)


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string such as "3h", "1h30m" or "1.5h".

    Terms are summed in whole nanoseconds. A non-zero total below one
    microsecond rounds up to 1µs so that "1ns" stays positive.

    Raises:
        InvalidExpirationError: The string does not match the grammar.
    """
    if text in ("0", "+0", "-0"):
        return timedelta(0)

    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise InvalidExpirationError(f"invalid duration {text!r}")

    sign, body = match.group(1), match.group(2)
    total_ns = sum(
        int(Decimal(number) * _UNIT_NANOSECONDS[unit])
        for number, unit in _TERM_RE.findall(body)
    )
    try:
        duration = timedelta(microseconds=-(-total_ns // 1_000))
    except OverflowError as exc:
        raise InvalidExpirationError(f"duration {text!r} is out of range") from exc
    return -duration if sign == "-" else duration


def resolve_expiration(
    requested: str | None,
    now: datetime,
    default: timedelta,
) -> datetime:
    """
    Resolve a requested lifetime into an absolute expiration time.

    Args:
        requested: Duration string from the caller; None or "" means default.
        now: Issue time the lifetime is measured from.
        default: Lifetime applied when nothing was requested.

    Raises:
        InvalidExpirationError: Unparsable or non-positive duration.
    """
    if not requested:
        return now + default

    duration = parse_duration(requested)
    if duration <= timedelta(0):
        raise InvalidExpirationError(
            f"expiration must be positive, got {requested!r}"
        )
    try:
        return now + duration
    except OverflowError as exc:
        raise InvalidExpirationError(
            f"expiration {requested!r} is out of range"
        ) from exc
