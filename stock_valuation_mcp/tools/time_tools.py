from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import RegisteredTool, define_tool
from .helpers import object_schema, string

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}") from None


def parse_datetime(value: str, zone: ZoneInfo) -> datetime:
    """Parse an ISO-8601 string; naive values are taken to be in `zone`."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid datetime format: {value!r} (expected ISO 8601)") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def _iso_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _readable(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z")


def _offset_hours(moment: datetime) -> float:
    offset = moment.utcoffset() or timedelta(0)
    return offset.total_seconds() / 3600


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def human_duration(total_seconds: int) -> str:
    weeks, rest = divmod(total_seconds, 7 * 86400)
    days, rest = divmod(rest, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = [
        _plural(n, unit)
        for n, unit in ((weeks, "week"), (days, "day"), (hours, "hour"), (minutes, "minute"))
        if n > 0
    ]
    if seconds > 0 or not parts:
        parts.append(_plural(seconds, "second"))
    return ", ".join(parts)


def relative_to(moment: datetime, now: datetime) -> str:
    delta = int((now - moment).total_seconds())
    suffix = "ago" if delta > 0 else "from now"
    magnitude = abs(delta)
    if magnitude <= 1:
        return "just now"
    if magnitude < 60:
        return f"{_plural(magnitude, 'second')} {suffix}"
    if magnitude < 3600:
        return f"{_plural(magnitude // 60, 'minute')} {suffix}"
    if magnitude < 86400:
        return f"{_plural(magnitude // 3600, 'hour')} {suffix}"
    if magnitude < 7 * 86400:
        return f"{_plural(magnitude // 86400, 'day')} {suffix}"
    return moment.strftime("%B %d, %Y")


class TimeTools:
    """Date/time helpers. `clock` returns the current aware UTC time."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _utc_now

    async def get_current_time(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        zone_name = arguments["timezone"]
        output = arguments["format"]
        now = self._clock().astimezone(load_zone(zone_name))

        if output == "iso":
            return {"iso": _iso_utc(now)}
        if output == "unix":
            return {"unix": int(now.timestamp())}
        if output == "readable":
            return {"readable": _readable(now)}

        dst = now.dst()
        return {
            "timezone": zone_name,
            "currentTime": _readable(now),
            "iso": _iso_utc(now),
            "localIso": now.isoformat(),
            "unix": int(now.timestamp()),
            "utc": now.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            "date": {"year": now.year, "month": now.month, "day": now.day},
            "time": {"hour": now.hour, "minute": now.minute, "second": now.second},
            "dayOfWeek": now.strftime("%A"),
            "dayOfYear": now.timetuple().tm_yday,
            "weekOfYear": now.isocalendar()[1],
            "utcOffsetHours": _offset_hours(now),
            "isDST": bool(dst),
        }

    async def convert_timezone(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        source_zone = load_zone(arguments["fromTimezone"])
        target_zone = load_zone(arguments["toTimezone"])
        moment = parse_datetime(arguments["datetime"], source_zone)

        original = moment.astimezone(source_zone)
        target = moment.astimezone(target_zone)
        difference = _offset_hours(target) - _offset_hours(original)

        return {
            "originalTime": _readable(original),
            "originalTimezone": arguments["fromTimezone"],
            "targetTime": _readable(target),
            "targetTimezone": arguments["toTimezone"],
            "timeDifference": f"{difference:+g}h",
            "iso": _iso_utc(moment),
            "unix": int(moment.timestamp()),
        }

    async def calculate_time_diff(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        utc = load_zone("UTC")
        start = parse_datetime(arguments["startDate"], utc)
        end_text = arguments.get("endDate")
        end = parse_datetime(end_text, utc) if end_text else self._clock()

        total_seconds = int(abs((end - start).total_seconds()))
        total_minutes = total_seconds // 60
        total_hours = total_minutes // 60
        total_days = total_hours // 24

        return {
            "startDate": _iso_utc(start),
            "endDate": _iso_utc(end),
            "difference": {
                "totalDays": total_days,
                "totalHours": total_hours,
                "totalMinutes": total_minutes,
                "totalSeconds": total_seconds,
                "weeks": total_days // 7,
                "days": total_days % 7,
                "hours": total_hours % 24,
                "minutes": total_minutes % 60,
                "seconds": total_seconds % 60,
            },
            "isFuture": end < start,
            "humanReadable": human_duration(total_seconds),
        }

    async def format_datetime(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        zone = load_zone(arguments["timezone"])
        text = arguments.get("datetime")
        now = self._clock()
        moment = parse_datetime(text, zone) if text else now
        local = moment.astimezone(zone)
        utc_moment = moment.astimezone(timezone.utc)

        return {
            "input": text or "now",
            "formats": {
                "iso": _iso_utc(moment),
                "isoDate": utc_moment.date().isoformat(),
                "isoTime": utc_moment.strftime("%H:%M:%S"),
                "readable": local.strftime("%B %d, %Y at %I:%M:%S %p %Z"),
                "short": local.strftime("%b %d, %Y, %H:%M"),
                "long": local.strftime("%A, %B %d, %Y at %I:%M:%S %p ") + arguments["timezone"],
                "relative": relative_to(moment, now),
            },
            "parsed": {
                "year": local.year,
                "month": local.month,
                "day": local.day,
                "hour": local.hour,
                "minute": local.minute,
                "second": local.second,
            },
        }


def build_tools(clock: Optional[Clock] = None) -> List[RegisteredTool]:
    tools = TimeTools(clock)
    zone_help = 'IANA timezone (e.g., "America/New_York", "Asia/Bangkok", "UTC")'

    return [
        define_tool(
            "get_current_time",
            "Get the current date/time in a timezone, with ISO, Unix and parsed components",
            object_schema(
                {
                    "timezone": string(zone_help, default="UTC"),
                    "format": string(
                        "Output format preference",
                        enum=["iso", "unix", "readable", "all"],
                        default="all",
                    ),
                }
            ),
            tools.get_current_time,
        ),
        define_tool(
            "convert_timezone",
            "Convert a date/time from one timezone to another",
            object_schema(
                {
                    "datetime": string('ISO datetime, e.g. "2024-01-15T14:30:00" or "2024-01-15 14:30"'),
                    "fromTimezone": string(zone_help, default="UTC"),
                    "toTimezone": string(zone_help),
                },
                required=["datetime", "toTimezone"],
            ),
            tools.convert_timezone,
        ),
        define_tool(
            "calculate_time_diff",
            "Calculate the difference between two dates/times in multiple units",
            object_schema(
                {
                    "startDate": string("Start date (ISO 8601; naive values are UTC)"),
                    "endDate": string("End date (ISO 8601); defaults to now"),
                },
                required=["startDate"],
            ),
            tools.calculate_time_diff,
        ),
        define_tool(
            "format_datetime",
            "Format a date/time into several common representations",
            object_schema(
                {
                    "datetime": string("Input datetime (ISO 8601); defaults to now"),
                    "timezone": string(zone_help, default="UTC"),
                }
            ),
            tools.format_datetime,
        ),
    ]
