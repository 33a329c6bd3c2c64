"""Civil-time resolution: local wall-clock hour <-> absolute UTC instant.

Offsets come from an injected :class:`TimezoneOffsetResolver`; the default one is
backed by the IANA database shipped with pytz. Unknown timezone identifiers never
raise here: the offset degrades to 0 and the local-hour extractor degrades to noon.
Callers that need to tell "unknown" apart from "legitimately UTC" should ask
``is_known_timezone`` first.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Protocol

import pandas as pd
import pytz

from panelsim.core.debug import DebugCollector, NullDebugCollector

Instant = pd.Timestamp

# Fixed-point correction bound; the loop stops earlier once the offset is stable.
MAX_OFFSET_ITERATIONS = 3
# Window used to find the offsets on either side of a transition for the tie-break.
_TIE_BREAK_PROBE = pd.Timedelta(hours=3)


class TimezoneOffsetResolver(Protocol):
    def offset_minutes(self, timezone_id: str, instant: Instant) -> int:
        """Signed minutes east of UTC in effect at ``instant``."""
        ...

    def is_known_timezone(self, timezone_id: str) -> bool:
        ...


class PytzOffsetResolver:
    """Offset lookups against the IANA rules bundled with pytz."""

    def _zone(self, timezone_id: str):
        try:
            return pytz.timezone(timezone_id)
        except (pytz.UnknownTimeZoneError, AttributeError):
            return None

    def offset_minutes(self, timezone_id: str, instant: Instant) -> int:
        zone = self._zone(timezone_id)
        if zone is None:
            return 0
        offset = as_instant(instant).tz_convert(zone).utcoffset()
        return int(offset.total_seconds() // 60)

    def is_known_timezone(self, timezone_id: str) -> bool:
        return self._zone(timezone_id) is not None

    def abbreviation(self, timezone_id: str, instant: Instant) -> str:
        zone = self._zone(timezone_id)
        if zone is None:
            return timezone_id
        return as_instant(instant).tz_convert(zone).tzname() or timezone_id


DEFAULT_RESOLVER = PytzOffsetResolver()


def as_instant(value: Any) -> Instant:
    """Coerce a date/datetime/string/Timestamp to a tz-aware UTC Timestamp.

    Naive values are taken to already be UTC.
    """
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def get_timezone_offset(timezone_id: str, instant: Any = None, resolver: TimezoneOffsetResolver | None = None) -> int:
    """UTC offset in minutes (east positive) at ``instant`` (defaults to now); 0 when unknown."""
    resolver = resolver or DEFAULT_RESOLVER
    when = as_instant(instant) if instant is not None else pd.Timestamp.now(tz="UTC")
    return resolver.offset_minutes(timezone_id, when)


def is_valid_timezone(timezone_id: str, resolver: TimezoneOffsetResolver | None = None) -> bool:
    return (resolver or DEFAULT_RESOLVER).is_known_timezone(timezone_id)


def _calendar_date(reference: Any, timezone_id: str, resolver: TimezoneOffsetResolver) -> dt.date:
    """Calendar day that ``timezone_id`` assigns to ``reference``.

    A plain ``date`` is already a calendar day and is used as-is.
    """
    if isinstance(reference, dt.date) and not isinstance(reference, dt.datetime):
        return reference
    instant = as_instant(reference)
    local = instant + pd.Timedelta(minutes=resolver.offset_minutes(timezone_id, instant))
    return local.date()


def _split_hour(local_hour: float) -> tuple[int, int]:
    hours = math.floor(local_hour)
    minutes = int(math.floor((local_hour - hours) * 60 + 0.5))
    return hours, minutes


def _earliest_interpretation(naive: Instant, candidate: Instant, timezone_id: str, resolver: TimezoneOffsetResolver) -> Instant:
    """Pick the earliest instant whose wall-clock reading equals ``naive``.

    At a fall-back transition both offsets reproduce the wall time; the earlier
    instant wins. In a spring-forward gap no offset does and ``candidate`` stands.
    """
    probes = (candidate - _TIE_BREAK_PROBE, candidate, candidate + _TIE_BREAK_PROBE)
    offsets = {resolver.offset_minutes(timezone_id, p) for p in probes}
    valid = []
    for offset in offsets:
        instant = naive - pd.Timedelta(minutes=offset)
        if resolver.offset_minutes(timezone_id, instant) == offset:
            valid.append(instant)
    return min(valid) if valid else candidate


def resolve_local_time(
    reference_date: Any,
    local_hour: float,
    timezone_id: str,
    resolver: TimezoneOffsetResolver | None = None,
    debug: DebugCollector | None = None,
) -> Instant:
    """Absolute UTC instant for ``local_hour`` on the local calendar day of ``reference_date``.

    The local hour is first read as if it were UTC on that day (the "naive" instant),
    then corrected by the zone offset found at the current estimate until the offset
    stops changing or ``MAX_OFFSET_ITERATIONS`` is reached.

    Tie-breaks:
    - repeated hour (fall back): the earliest-occurring instant.
    - missing hour (spring forward): the instant reached by the correction loop,
      which lands just after the gap (e.g. 02:30 -> 03:30 local).
    """
    resolver = resolver or DEFAULT_RESOLVER
    debug = debug or NullDebugCollector()

    day = _calendar_date(reference_date, timezone_id, resolver)
    hours, minutes = _split_hour(local_hour)
    naive = pd.Timestamp(year=day.year, month=day.month, day=day.day, tz="UTC") + pd.Timedelta(hours=hours, minutes=minutes)

    candidate = naive
    previous = None
    seen = []
    for _ in range(MAX_OFFSET_ITERATIONS):
        offset = resolver.offset_minutes(timezone_id, candidate)
        if offset == previous:
            break
        candidate = naive - pd.Timedelta(minutes=offset)
        previous = offset
        seen.append(offset)

    resolved = _earliest_interpretation(naive, candidate, timezone_id, resolver)
    debug.emit(
        "civil_time.resolve",
        {
            "timezone": timezone_id,
            "local_hour": float(local_hour),
            "offsets": seen,
            "iterations": len(seen),
            "tie_break": bool(resolved != candidate),
        },
        ts=resolved,
    )
    return resolved


def to_local(instant: Any, timezone_id: str, resolver: TimezoneOffsetResolver | None = None) -> pd.Timestamp:
    """Wall-clock Timestamp for ``instant`` carrying the resolver's fixed offset."""
    resolver = resolver or DEFAULT_RESOLVER
    utc = as_instant(instant)
    return utc.tz_convert(pytz.FixedOffset(resolver.offset_minutes(timezone_id, utc)))


def extract_local_hour(instant: Any, timezone_id: str, resolver: TimezoneOffsetResolver | None = None) -> float:
    """Local hour (0-23.99, minute precision) of ``instant``; 12.0 when the zone is unknown."""
    resolver = resolver or DEFAULT_RESOLVER
    if not resolver.is_known_timezone(timezone_id):
        return 12.0
    local = to_local(instant, timezone_id, resolver)
    return local.hour + local.minute / 60


def format_local_hour(local_hour: float) -> str:
    """Format a local hour as ``h:mm AM/PM`` without any timezone conversion."""
    hours, minutes = _split_hour(local_hour)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    hours %= 24
    suffix = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def timezone_abbreviation(timezone_id: str, instant: Any = None) -> str:
    """Short zone name (PST, CEST, ...); the identifier itself when unknown."""
    when = as_instant(instant) if instant is not None else pd.Timestamp.now(tz="UTC")
    return DEFAULT_RESOLVER.abbreviation(timezone_id, when)


def is_dst(timezone_id: str, instant: Any = None, resolver: TimezoneOffsetResolver | None = None) -> bool:
    """True when the zone observes DST and the offset at ``instant`` is the larger seasonal one."""
    resolver = resolver or DEFAULT_RESOLVER
    when = as_instant(instant) if instant is not None else pd.Timestamp.now(tz="UTC")
    jan = resolver.offset_minutes(timezone_id, pd.Timestamp(year=when.year, month=1, day=1, tz="UTC"))
    jul = resolver.offset_minutes(timezone_id, pd.Timestamp(year=when.year, month=7, day=1, tz="UTC"))
    current = resolver.offset_minutes(timezone_id, when)
    return jan != jul and current == max(jan, jul)


def format_time_in_timezone(instant: Any, timezone_id: str, fmt: str = "time", resolver: TimezoneOffsetResolver | None = None) -> str:
    """Render ``instant`` in the zone's wall clock.

    ``fmt`` is ``time`` (``1:05 PM``), ``datetime`` (``Jan 15, 1:05 PM``) or
    ``full`` (``Mon, Jan 15, 2024, 1:05 PM PST``).
    """
    local = to_local(instant, timezone_id, resolver)
    clock = format_local_hour(local.hour + local.minute / 60)
    if fmt == "time":
        return clock
    if fmt == "datetime":
        return f"{local.strftime('%b')} {local.day}, {clock}"
    if fmt == "full":
        abbrev = timezone_abbreviation(timezone_id, instant)
        return f"{local.strftime('%a, %b')} {local.day}, {local.year}, {clock} {abbrev}"
    raise ValueError(f"Unsupported time format: {fmt}")


__all__ = [
    "Instant",
    "MAX_OFFSET_ITERATIONS",
    "TimezoneOffsetResolver",
    "PytzOffsetResolver",
    "DEFAULT_RESOLVER",
    "as_instant",
    "get_timezone_offset",
    "is_valid_timezone",
    "resolve_local_time",
    "to_local",
    "extract_local_hour",
    "format_local_hour",
    "timezone_abbreviation",
    "is_dst",
    "format_time_in_timezone",
]
