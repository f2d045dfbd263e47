"""
Natural-Language Date/Time Resolver

Turns free-form Spanish or English phrases ("mañana", "viernes a las 7pm",
"31 de mayo 19h", "2025-10-20") into a zone-aware timestamp in the event
timezone, or into an UnresolvedDate carrying a message the user can read.

Resolution order, first match wins:
1. ISO-8601 timestamps
2. Numeric dates (d/M/yyyy, M/d/yyyy, yyyy-M-d, d/M)
3. Month-name dates in both languages
4. Relative keywords and weekday names

The time of day is extracted independently of the date and defaults to 20:00.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import NamedTuple
from zoneinfo import ZoneInfo

from .results import (
    EMPTY_DATE,
    UNPARSEABLE_DATE,
    ResolvedDate,
    ResolvedDateTime,
    UnresolvedDate,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Caracas"

EMPTY_DATE_MESSAGE = "No recibí una fecha. Por favor indica cuándo quieres el evento."
UNPARSEABLE_DATE_MESSAGE = (
    'No pude entender la fecha "{phrase}". Intenta con un formato como '
    '"2025-10-20", "viernes a las 7pm" o "31 de mayo 19h".'
)


class TimeOfDay(NamedTuple):
    hour: int
    minute: int


DEFAULT_TIME = TimeOfDay(20, 0)

_MERIDIEM = r"(am|pm|a\.m\.|p\.m\.)"

# Extraction is tried in this order; the first hit wins.
# "20.10.2025" must stay a date, hence the lookahead on the first pattern.
_CLOCK_TIME = re.compile(
    r"(?:^|\s)(\d{1,2})[:.](\d{2})(?![./-]?\d)\s*" + _MERIDIEM + r"?", re.IGNORECASE
)
_HOUR_MERIDIEM = re.compile(r"(?:^|\s)(\d{1,2})\s*" + _MERIDIEM + r"(?![a-z])", re.IGNORECASE)
_HOUR_SUFFIX = re.compile(r"(?:^|\s)(\d{1,2})\s*(?:hs|horas?|h)\b", re.IGNORECASE)
_AT_HOUR = re.compile(
    r"(?:a las|sobre las|para las|a la)\s+(\d{1,2})(?:[:.](\d{2}))?\s*" + _MERIDIEM + r"?",
    re.IGNORECASE,
)

_TIME_PATTERNS = (_CLOCK_TIME, _HOUR_MERIDIEM, _HOUR_SUFFIX, _AT_HOUR)
_STRIP_ORDER = (_AT_HOUR, _CLOCK_TIME, _HOUR_MERIDIEM, _HOUR_SUFFIX)
_CONNECTORS = re.compile(r"(?:^|\s)(?:a las|sobre las|para las|a la|at|@)(?=\s|$)", re.IGNORECASE)
# "por la mañana" names a part of the day, not tomorrow
_PART_OF_DAY = re.compile(
    r"(?:^|\s)(?:(?:por|en|de|durante)\s+la|in\s+the)\s+"
    r"(mañana|manana|tarde|noche|morning|afternoon|evening)(?![a-záéíóúñ])",
    re.IGNORECASE,
)
_AFTERNOON_PARTS = {"tarde", "noche", "afternoon", "evening"}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_ISO_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_FIRST = re.compile(r"^(\d{1,2})([/.-])(\d{1,2})\2(\d{4})$")
_YEAR_FIRST = re.compile(r"^(\d{4})([/-])(\d{1,2})\2(\d{1,2})$")
_SHORT_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})$")

# Monday == 0, matching date.weekday()
WEEKDAYS = {
    "lunes": 0,
    "monday": 0,
    "martes": 1,
    "tuesday": 1,
    "miercoles": 2,
    "miércoles": 2,
    "wednesday": 2,
    "jueves": 3,
    "thursday": 3,
    "viernes": 4,
    "friday": 4,
    "sabado": 5,
    "sábado": 5,
    "saturday": 5,
    "domingo": 6,
    "sunday": 6,
}

MONTHS = {
    "enero": 1,
    "ene": 1,
    "january": 1,
    "jan": 1,
    "febrero": 2,
    "feb": 2,
    "february": 2,
    "marzo": 3,
    "mar": 3,
    "march": 3,
    "abril": 4,
    "abr": 4,
    "april": 4,
    "apr": 4,
    "mayo": 5,
    "may": 5,
    "junio": 6,
    "jun": 6,
    "june": 6,
    "julio": 7,
    "jul": 7,
    "july": 7,
    "agosto": 8,
    "ago": 8,
    "august": 8,
    "aug": 8,
    "septiembre": 9,
    "setiembre": 9,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "octubre": 10,
    "oct": 10,
    "october": 10,
    "noviembre": 11,
    "nov": 11,
    "november": 11,
    "diciembre": 12,
    "dic": 12,
    "december": 12,
    "dec": 12,
}

_WEEKDAY_NAMES = "|".join(sorted(WEEKDAYS, key=len, reverse=True))
_NEXT_MODIFIERS = {"próximo", "proximo", "próxima", "proxima", "siguiente", "next"}
_WEEKDAY = re.compile(
    r"(?:\b(este|esta|this|próximo|proximo|próxima|proxima|siguiente|next)\s+)?"
    r"(?<![a-záéíóúñ])(" + _WEEKDAY_NAMES + r")(?![a-záéíóúñ])"
)
_DAY_MONTH_NAME = re.compile(
    r"^(?:el\s+)?(?:(?:" + _WEEKDAY_NAMES + r")\s+)?(\d{1,2})\s+(?:de\s+)?"
    r"([a-záéíóú]+)\.?(?:\s+(?:de\s+|del\s+)?(\d{4}))?$"
)
_MONTH_NAME_DAY = re.compile(
    r"^(?:(?:" + _WEEKDAY_NAMES + r")\s+)?([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?"
    r"(?:\s+(\d{4}))?$"
)


def _to_twenty_four_hour(hour: int, meridiem: str | None) -> int:
    if not meridiem:
        return hour
    cleaned = meridiem.replace(".", "").lower()
    if cleaned == "pm" and hour < 12:
        return hour + 12
    if cleaned == "am" and hour == 12:
        return 0
    return hour


def extract_time_of_day(phrase: str) -> TimeOfDay | None:
    """Find an explicit time of day in the phrase, normalized to 24 hours."""
    for pattern in _TIME_PATTERNS:
        match = pattern.search(phrase)
        if not match:
            continue

        groups = match.groups()
        minute_text = groups[1] if len(groups) == 3 else None
        meridiem = groups[-1] if len(groups) > 1 else None

        hour = _to_twenty_four_hour(int(groups[0]), meridiem)
        if not meridiem and hour < 12:
            part = _PART_OF_DAY.search(phrase)
            if part and part.group(1).lower() in _AFTERNOON_PARTS:
                hour += 12
        if hour > 23:
            continue
        minute = int(minute_text) if minute_text else 0
        if minute > 59:
            minute = 0
        return TimeOfDay(hour, minute)
    return None


def strip_time_of_day(phrase: str) -> str:
    """Remove time fragments and connectors so only the date words remain."""
    sanitized = phrase
    for pattern in _STRIP_ORDER:
        sanitized = pattern.sub(" ", sanitized, count=1)
    sanitized = _PART_OF_DAY.sub(" ", sanitized)
    sanitized = _CONNECTORS.sub(" ", sanitized.replace(",", " "))
    return re.sub(r"\s+", " ", sanitized).strip()


class DateResolver:
    """Resolve date phrases against a fixed event timezone.

    Args:
        timezone: IANA zone name every result is anchored to.
        default_time: time of day applied when the phrase names none.
        clock: optional callable returning "now"; tests inject a fixed one.
    """

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        default_time: TimeOfDay = DEFAULT_TIME,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.timezone = ZoneInfo(timezone)
        self.default_time = default_time
        self._clock = clock

    def now(self) -> datetime:
        current = self._clock() if self._clock else datetime.now(self.timezone)
        if current.tzinfo is None:
            current = current.replace(tzinfo=self.timezone)
        return current.astimezone(self.timezone).replace(second=0, microsecond=0)

    def resolve(self, phrase: str | None, now: datetime | None = None) -> ResolvedDateTime:
        trimmed = (phrase or "").strip()
        if not trimmed:
            return UnresolvedDate(reason=EMPTY_DATE, message=EMPTY_DATE_MESSAGE)

        if now is None:
            now = self.now()
        else:
            now = now.astimezone(self.timezone)

        lower = trimmed.lower()
        time_of_day = extract_time_of_day(lower)

        resolved = self._parse_iso(trimmed, time_of_day)
        if resolved is None:
            sanitized = strip_time_of_day(lower) or lower
            resolved = (
                self._parse_numeric(sanitized, time_of_day, now)
                or self._parse_month_name(sanitized, time_of_day, now)
                or self._parse_relative(sanitized, time_of_day, now)
            )

        if resolved is None:
            logger.debug("Could not resolve date phrase %r", trimmed)
            return UnresolvedDate(
                reason=UNPARSEABLE_DATE,
                message=UNPARSEABLE_DATE_MESSAGE.format(phrase=trimmed),
            )

        logger.debug("Resolved %r to %s", trimmed, resolved.isoformat())
        return ResolvedDate(timestamp=resolved)

    def _at(self, day: date, time_of_day: TimeOfDay | None) -> datetime:
        hour, minute = time_of_day or self.default_time
        return datetime.combine(day, time(hour, minute), tzinfo=self.timezone)

    def _parse_iso(self, phrase: str, time_of_day: TimeOfDay | None) -> datetime | None:
        if not _ISO_DATE.match(phrase):
            return None
        candidate = phrase[:-1] + "+00:00" if phrase.endswith(("Z", "z")) else phrase
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None

        if _ISO_DATE_ONLY.match(phrase):
            return self._at(parsed.date(), time_of_day)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=self.timezone)
        return parsed.astimezone(self.timezone)

    def _with_inferred_year(
        self, day: int, month: int, time_of_day: TimeOfDay | None, now: datetime
    ) -> datetime | None:
        try:
            candidate = date(now.year, month, day)
        except ValueError:
            return None
        if candidate < now.date():
            try:
                candidate = candidate.replace(year=now.year + 1)
            except ValueError:
                return None
        return self._at(candidate, time_of_day)

    def _parse_numeric(
        self, phrase: str, time_of_day: TimeOfDay | None, now: datetime
    ) -> datetime | None:
        match = _DAY_FIRST.match(phrase)
        if match:
            first, separator, second, year = match.groups()
            orders = [(int(first), int(second))]
            if separator == "/":
                orders.append((int(second), int(first)))
            for day, month in orders:
                try:
                    return self._at(date(int(year), month, day), time_of_day)
                except ValueError:
                    continue
            return None

        match = _YEAR_FIRST.match(phrase)
        if match:
            year, _, month, day = match.groups()
            try:
                return self._at(date(int(year), int(month), int(day)), time_of_day)
            except ValueError:
                return None

        match = _SHORT_DATE.match(phrase)
        if match:
            return self._with_inferred_year(int(match.group(1)), int(match.group(2)), time_of_day, now)
        return None

    def _parse_month_name(
        self, phrase: str, time_of_day: TimeOfDay | None, now: datetime
    ) -> datetime | None:
        day_text = month_text = year_text = None

        match = _DAY_MONTH_NAME.match(phrase)
        if match and match.group(2) in MONTHS:
            day_text, month_text, year_text = match.groups()
        else:
            match = _MONTH_NAME_DAY.match(phrase)
            if match and match.group(1) in MONTHS:
                month_text, day_text, year_text = match.groups()

        if not (day_text and month_text):
            return None

        month = MONTHS[month_text]
        if year_text is None:
            return self._with_inferred_year(int(day_text), month, time_of_day, now)
        try:
            return self._at(date(int(year_text), month, int(day_text)), time_of_day)
        except ValueError:
            return None

    def _parse_relative(
        self, phrase: str, time_of_day: TimeOfDay | None, now: datetime
    ) -> datetime | None:
        today = now.date()

        if any(word in phrase for word in ("pasado mañana", "pasado manana", "day after tomorrow")):
            return self._at(today + timedelta(days=2), time_of_day)
        if any(word in phrase for word in ("mañana", "manana", "tomorrow")):
            return self._at(today + timedelta(days=1), time_of_day)
        if "hoy" in phrase or "today" in phrase or "tonight" in phrase:
            return self._at(today, time_of_day)
        if "fin de semana" in phrase or "weekend" in phrase:
            days_until_saturday = (5 - today.weekday()) % 7 or 7
            return self._at(today + timedelta(days=days_until_saturday), time_of_day)

        match = _WEEKDAY.search(phrase)
        if not match:
            return None

        modifier, day_name = match.groups()
        days_ahead = (WEEKDAYS[day_name] - today.weekday()) % 7
        if days_ahead == 0:
            if modifier in _NEXT_MODIFIERS or self._at(today, time_of_day) <= now:
                days_ahead = 7
        return self._at(today + timedelta(days=days_ahead), time_of_day)
