from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime
from enum import Enum
from typing import List, Tuple

from dhis2_insights.analytics.errors import InvalidSelectionError

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_MONTHLY_RE = re.compile(r"^(\d{4})(\d{2})$")
_QUARTERLY_RE = re.compile(r"^(\d{4})Q(\d)$")
_YEARLY_RE = re.compile(r"^(\d{4})$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PeriodToken(str, Enum):
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    THIS_QUARTER = "THIS_QUARTER"
    LAST_QUARTER = "LAST_QUARTER"
    THIS_YEAR = "THIS_YEAR"
    LAST_YEAR = "LAST_YEAR"
    LAST_12_MONTHS = "LAST_12_MONTHS"


PERIOD_LABELS = {
    PeriodToken.THIS_MONTH: "This Month",
    PeriodToken.LAST_MONTH: "Last Month",
    PeriodToken.THIS_QUARTER: "This Quarter",
    PeriodToken.LAST_QUARTER: "Last Quarter",
    PeriodToken.THIS_YEAR: "This Year",
    PeriodToken.LAST_YEAR: "Last Year",
    PeriodToken.LAST_12_MONTHS: "Last 12 Months",
}


def parse_period_token(value: str | PeriodToken) -> PeriodToken | None:
    if isinstance(value, PeriodToken):
        return value
    try:
        return PeriodToken(str(value).strip().upper())
    except ValueError:
        return None


def resolve_period(
    token: str | PeriodToken,
    now: date | None = None,
    allow_passthrough: bool = False,
) -> str | List[str]:
    """Map a relative period token to concrete analytics period id(s).

    LAST_12_MONTHS yields a list of twelve ``YYYYMM`` ids ending at the
    current month, oldest first; every other token yields a single id.

    With ``allow_passthrough`` an unrecognised token is forwarded as-is
    (split on ``;``) instead of raising, so that concrete periods or tokens
    added server-side can still be queried.
    """
    today = _today(now)
    parsed = parse_period_token(token)

    if parsed is None:
        raw = str(token or "").strip()
        parts = [p.strip() for p in raw.split(";") if p.strip()]
        if allow_passthrough and parts:
            logger.warning("Unknown relative period %r, passing it through as-is", raw)
            return parts if len(parts) > 1 else parts[0]
        raise InvalidSelectionError(f"Unknown period token: {raw!r}", dimension="pe", identifier=raw or None)

    year, month = today.year, today.month
    quarter = (month - 1) // 3 + 1

    if parsed is PeriodToken.THIS_MONTH:
        return _month_id(year, month)
    if parsed is PeriodToken.LAST_MONTH:
        return _month_id(*_shift_month(year, month, -1))
    if parsed is PeriodToken.THIS_QUARTER:
        return f"{year}Q{quarter}"
    if parsed is PeriodToken.LAST_QUARTER:
        if quarter == 1:
            return f"{year - 1}Q4"
        return f"{year}Q{quarter - 1}"
    if parsed is PeriodToken.THIS_YEAR:
        return str(year)
    if parsed is PeriodToken.LAST_YEAR:
        return str(year - 1)
    return [_month_id(*_shift_month(year, month, offset)) for offset in range(-11, 1)]


def period_date_range(token: str | PeriodToken, now: date | None = None) -> Tuple[str, str]:
    today = _today(now)
    parsed = parse_period_token(token)
    if parsed is None:
        raise InvalidSelectionError(f"Unknown period token: {token!r}", dimension="pe", identifier=str(token))

    if parsed is PeriodToken.LAST_12_MONTHS:
        start_year, start_month = _shift_month(today.year, today.month, -11)
        start = date(start_year, start_month, 1)
        end = _month_end(today.year, today.month)
        return start.isoformat(), end.isoformat()

    resolved = resolve_period(parsed, today)
    span = _period_span(resolved)
    if span is None:
        raise InvalidSelectionError(f"No date range for period {resolved!r}", dimension="pe", identifier=str(resolved))
    return span[0].isoformat(), span[1].isoformat()


def period_label(token: str | PeriodToken) -> str:
    parsed = parse_period_token(token)
    if parsed is None:
        return str(token)
    return PERIOD_LABELS[parsed]


def compare_concrete_periods(a: str, b: str) -> int:
    """Chronological three-way comparison of concrete period ids.

    Works across ``YYYYMM``, ``YYYYQN``, ``YYYY`` and ISO dates by comparing
    the calendar span each id covers: earlier start first, then shorter span
    first. Ids in any other encoding sort after all recognised ones, by text.
    """
    key_a = period_sort_key(a)
    key_b = period_sort_key(b)
    return (key_a > key_b) - (key_a < key_b)


def period_sort_key(period_id: str) -> tuple:
    span = _period_span(period_id)
    if span is None:
        return (1, date.max, date.max, str(period_id))
    return (0, span[0], span[1], str(period_id))


def format_period_id(period_id: str) -> str:
    match = _MONTHLY_RE.match(period_id or "")
    if match and 1 <= int(match.group(2)) <= 12:
        return f"{match.group(1)}-{match.group(2)}"
    return period_id


def describe_period(period_id: str) -> str:
    value = period_id or ""
    match = _MONTHLY_RE.match(value)
    if match and 1 <= int(match.group(2)) <= 12:
        return f"{MONTH_NAMES[int(match.group(2)) - 1]} {match.group(1)}"
    match = _QUARTERLY_RE.match(value)
    if match:
        return f"Q{match.group(2)} {match.group(1)}"
    if _YEARLY_RE.match(value):
        return f"Year {value}"
    return period_id


def _period_span(period_id: str) -> Tuple[date, date] | None:
    value = str(period_id or "")

    match = _MONTHLY_RE.match(value)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return date(year, month, 1), _month_end(year, month)
        return None

    match = _QUARTERLY_RE.match(value)
    if match:
        year, quarter = int(match.group(1)), int(match.group(2))
        if 1 <= quarter <= 4:
            first_month = (quarter - 1) * 3 + 1
            return date(year, first_month, 1), _month_end(year, first_month + 2)
        return None

    if _YEARLY_RE.match(value):
        year = int(value)
        if year < 1:
            return None
        return date(year, 1, 1), date(year, 12, 31)

    if _ISO_DATE_RE.match(value):
        try:
            day = date.fromisoformat(value)
        except ValueError:
            return None
        return day, day

    return None


def _today(now: date | None) -> date:
    if now is None:
        return datetime.now().date()
    if isinstance(now, datetime):
        return now.date()
    return now


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    shifted_year, shifted_month = divmod(index, 12)
    return shifted_year, shifted_month + 1


def _month_id(year: int, month: int) -> str:
    return f"{year}{month:02d}"


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])
