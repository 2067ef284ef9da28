"""
Cron expression parser for task schedules.

Parses standard 5-field crontab expressions and computes next fire times.

Cron support:
- Standard 5 fields: minute hour day month day_of_week
- Supported tokens per field: '*', '?', '*/n', 'a', 'a,b,c', 'a-b', 'a-b/n'
- Month (JAN-DEC) and weekday (SUN-SAT) names, case-insensitive
- Descriptors: @yearly, @annually, @monthly, @weekly, @daily, @midnight,
  @hourly, and @every <duration> (e.g. "@every 30m", "@every 1h30m")
- Day-of-month vs day-of-week semantics: if both are restricted (not '*'),
  then match if (dom matches OR dow matches). This matches traditional cron.

Timezones come from the stdlib ``zoneinfo`` database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class CronParseError(ValueError):
    pass


DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

MONTH_NAMES = {
    name: i + 1
    for i, name in enumerate(["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"])
}
DOW_NAMES = {name: i for i, name in enumerate(["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"])}

_DURATION_RE = re.compile(r"(\d+)(h|m|s)")
_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}


@dataclass(frozen=True)
class CronSpec:
    minutes: set[int]
    hours: set[int]
    dom: set[int]  # 1-31
    months: set[int]  # 1-12
    dow: set[int]  # 0-6 (0=Sunday)
    dom_any: bool
    dow_any: bool


@dataclass(frozen=True)
class CronSchedule:
    """
    A parsed schedule: either a calendar spec or a fixed ``@every`` interval.

    Use :meth:`parse` to build one; :meth:`next_after` works on unix
    timestamps so the scheduler never handles timezones itself.
    """

    expr: str
    tz: ZoneInfo
    spec: CronSpec | None = None
    interval_s: float | None = None

    @classmethod
    def parse(cls, expr: str, timezone: str | None = None) -> CronSchedule:
        try:
            tz = ZoneInfo(timezone) if timezone else ZoneInfo("UTC")
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise CronParseError(f"unknown timezone {timezone!r}") from e

        text = expr.strip()
        lowered = text.lower()
        if lowered.startswith("@every"):
            return cls(expr=expr, tz=tz, interval_s=_parse_duration(text[len("@every") :].strip(), expr))
        if lowered.startswith("@"):
            if lowered not in DESCRIPTORS:
                raise CronParseError(f"unknown descriptor: {expr!r}")
            text = DESCRIPTORS[lowered]
        return cls(expr=expr, tz=tz, spec=_parse_cron(text))

    def next_fire_time(self, now: datetime) -> datetime:
        """Next fire time strictly after ``now`` (naive datetimes are taken as schedule-local)."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=self.tz)
        else:
            now = now.astimezone(self.tz)

        if self.interval_s is not None:
            return now + timedelta(seconds=self.interval_s)

        assert self.spec is not None
        # Start at next minute boundary
        start = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
        return _find_next_match(self.spec, start)

    def next_after(self, ts: float) -> float:
        return self.next_fire_time(datetime.fromtimestamp(ts, tz=self.tz)).timestamp()


def _parse_duration(text: str, expr: str) -> float:
    pos = 0
    total = 0
    for m in _DURATION_RE.finditer(text):
        if m.start() != pos:
            break
        total += int(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if not text or pos != len(text) or total <= 0:
        raise CronParseError(f"invalid @every duration: {expr!r}")
    return float(total)


def _find_next_match(spec: CronSpec, cursor: datetime) -> datetime:
    # Consecutive February 29ths can be eight years apart (2096, 2104)
    limit = cursor + timedelta(days=8 * 366)
    cur = cursor

    while cur <= limit:
        if cur.month not in spec.months:
            cur = (cur.replace(day=1, hour=0, minute=0) + timedelta(days=32)).replace(day=1)
            continue
        if not _dom_or_dow_match(spec, cur):
            cur = (cur + timedelta(days=1)).replace(hour=0, minute=0)
            continue
        if cur.hour not in spec.hours:
            cur = (cur + timedelta(hours=1)).replace(minute=0)
            continue
        if cur.minute not in spec.minutes:
            cur = cur + timedelta(minutes=1)
            continue
        return cur

    raise CronParseError("cron expression produced no next fire time within safety window")


def _dom_or_dow_match(spec: CronSpec, dt: datetime) -> bool:
    dom_match = dt.day in spec.dom
    # Python: Monday=0..Sunday=6; cron: Sunday=0..Saturday=6
    cron_dow = (dt.weekday() + 1) % 7
    dow_match = cron_dow in spec.dow

    if spec.dom_any and spec.dow_any:
        return True
    if spec.dom_any:
        return dow_match
    if spec.dow_any:
        return dom_match
    return dom_match or dow_match


def _parse_cron(expr: str) -> CronSpec:
    parts = [p for p in expr.strip().split() if p]
    if len(parts) != 5:
        raise CronParseError(f"cron must have 5 fields, got {len(parts)}: {expr!r}")

    return CronSpec(
        minutes=_parse_field(parts[0], min_v=0, max_v=59),
        hours=_parse_field(parts[1], min_v=0, max_v=23),
        dom=_parse_field(parts[2], min_v=1, max_v=31),
        months=_parse_field(parts[3], min_v=1, max_v=12, names=MONTH_NAMES),
        dow=_parse_field(parts[4], min_v=0, max_v=6, allow_7_as_0=True, names=DOW_NAMES),
        dom_any=parts[2] in ("*", "?"),
        dow_any=parts[4] in ("*", "?"),
    )


def _parse_value(raw: str, token: str, names: dict[str, int] | None) -> int:
    raw = raw.strip()
    if names and raw.upper() in names:
        return names[raw.upper()]
    if not raw.isdigit():
        raise CronParseError(f"invalid value in field: {token!r}")
    return int(raw)


def _parse_field(
    token: str,
    *,
    min_v: int,
    max_v: int,
    allow_7_as_0: bool = False,
    names: dict[str, int] | None = None,
) -> set[int]:
    token = token.strip()
    if token in ("*", "?"):
        return set(range(min_v, max_v + 1))

    values: set[int] = set()
    for part in token.split(","):
        part = part.strip()
        if not part:
            continue
        step = 1
        if "/" in part:
            part, step_s = (s.strip() for s in part.split("/", 1))
            if not step_s.isdigit() or int(step_s) == 0:
                raise CronParseError(f"invalid step in field: {token!r}")
            step = int(step_s)

        if part in ("*", "?"):
            values.update(range(min_v, max_v + 1, step))
            continue

        if "-" in part:
            a_s, b_s = part.split("-", 1)
            a = _parse_value(a_s, token, names)
            b = _parse_value(b_s, token, names)
            if allow_7_as_0 and b == 7:
                # "5-7" is Fri, Sat, Sun
                if a > 7:
                    raise CronParseError(f"range start > end in field: {token!r}")
                values.update(v % 7 for v in range(a, 8, step))
                continue
            if a > b:
                raise CronParseError(f"range start > end in field: {token!r}")
            if a < min_v or b > max_v:
                raise CronParseError(f"range out of bounds in field: {token!r}")
            values.update(range(a, b + 1, step))
            continue

        v = _parse_value(part, token, names)
        if allow_7_as_0 and v == 7:
            v = 0
        if v < min_v or v > max_v:
            raise CronParseError(f"value out of bounds in field: {token!r}")
        if step > 1:
            # "a/n" means a through max in steps of n
            values.update(range(v, max_v + 1, step))
        else:
            values.add(v)

    if not values:
        raise CronParseError(f"empty field: {token!r}")
    return values
