#!/usr/bin/env python3
"""
Tests for the natural-language date resolver (Spanish and English phrases).

"Now" is fixed at Monday 2025-03-10 09:00 in America/Caracas.
"""

from datetime import datetime, timedelta

from fakes import CARACAS, FIXED_NOW, fixed_resolver

from event_assistant.tools.date_resolver import TimeOfDay, extract_time_of_day, strip_time_of_day
from event_assistant.tools.results import EMPTY_DATE, UNPARSEABLE_DATE, ResolvedDate, UnresolvedDate


def resolve(phrase: str) -> datetime:
    result = fixed_resolver().resolve(phrase)
    assert isinstance(result, ResolvedDate), f"{phrase!r} did not resolve: {result}"
    return result.timestamp


def test_tomorrow_without_time_defaults_to_eight_pm():
    print("Testing 'mañana'...")
    assert resolve("mañana") == datetime(2025, 3, 11, 20, 0, tzinfo=CARACAS)
    assert resolve("manana") == datetime(2025, 3, 11, 20, 0, tzinfo=CARACAS)
    assert resolve("tomorrow") == datetime(2025, 3, 11, 20, 0, tzinfo=CARACAS)


def test_relative_keywords():
    assert resolve("pasado mañana") == datetime(2025, 3, 12, 20, 0, tzinfo=CARACAS)
    assert resolve("day after tomorrow 6pm") == datetime(2025, 3, 12, 18, 0, tzinfo=CARACAS)
    assert resolve("hoy a las 7pm") == datetime(2025, 3, 10, 19, 0, tzinfo=CARACAS)
    assert resolve("este fin de semana") == datetime(2025, 3, 15, 20, 0, tzinfo=CARACAS)
    assert resolve("next weekend") == datetime(2025, 3, 15, 20, 0, tzinfo=CARACAS)


def test_iso_date_only_gets_default_time():
    assert resolve("2025-10-20") == datetime(2025, 10, 20, 20, 0, tzinfo=CARACAS)


def test_iso_timestamp_round_trips_unchanged():
    for stamp in ("2025-10-20T18:30:00-04:00", "2025-10-20T22:30:00+00:00", "2025-10-20T22:30:00Z"):
        expected = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
        result = resolve(stamp)
        assert result == expected, f"{stamp} -> {result}"
        assert result.utcoffset() == timedelta(hours=-4)


def test_naive_iso_timestamp_is_anchored_to_event_zone():
    assert resolve("2025-10-20T18:30") == datetime(2025, 10, 20, 18, 30, tzinfo=CARACAS)


def test_explicit_times_are_normalized_to_24_hours():
    cases = {
        "mañana 7pm": (19, 0),
        "mañana 7:30 pm": (19, 30),
        "mañana a las 9": (9, 0),
        "mañana sobre las 10:15": (10, 15),
        "mañana para las 11 am": (11, 0),
        "mañana 12am": (0, 0),
        "mañana 12pm": (12, 0),
        "mañana 21h": (21, 0),
        "mañana 18 horas": (18, 0),
        "mañana 22hs": (22, 0),
    }
    for phrase, (hour, minute) in cases.items():
        result = resolve(phrase)
        assert (result.hour, result.minute) == (hour, minute), f"{phrase!r} -> {result}"


def test_numeric_formats():
    assert resolve("20/10/2025") == datetime(2025, 10, 20, 20, 0, tzinfo=CARACAS)
    assert resolve("20-10-2025") == datetime(2025, 10, 20, 20, 0, tzinfo=CARACAS)
    assert resolve("20.10.2025") == datetime(2025, 10, 20, 20, 0, tzinfo=CARACAS)
    # month/day fallback when day/month is impossible
    assert resolve("10/25/2025") == datetime(2025, 10, 25, 20, 0, tzinfo=CARACAS)
    assert resolve("2025/10/20") == datetime(2025, 10, 20, 20, 0, tzinfo=CARACAS)
    assert resolve("20/10/2025 7:30 pm") == datetime(2025, 10, 20, 19, 30, tzinfo=CARACAS)


def test_short_date_infers_year_and_rolls_forward():
    assert resolve("15/4") == datetime(2025, 4, 15, 20, 0, tzinfo=CARACAS)
    assert resolve("5/1") == datetime(2026, 1, 5, 20, 0, tzinfo=CARACAS)
    # today is not in the past
    assert resolve("10/3") == datetime(2025, 3, 10, 20, 0, tzinfo=CARACAS)


def test_month_names_in_both_languages():
    assert resolve("31 de mayo 2025") == datetime(2025, 5, 31, 20, 0, tzinfo=CARACAS)
    assert resolve("31 de mayo de 2025 19h") == datetime(2025, 5, 31, 19, 0, tzinfo=CARACAS)
    assert resolve("May 31 2025") == datetime(2025, 5, 31, 20, 0, tzinfo=CARACAS)
    assert resolve("May 31, 2025 at 7pm") == datetime(2025, 5, 31, 19, 0, tzinfo=CARACAS)
    assert resolve("2 de febrero") == datetime(2026, 2, 2, 20, 0, tzinfo=CARACAS)
    assert resolve("sábado 15 de marzo") == datetime(2025, 3, 15, 20, 0, tzinfo=CARACAS)


def test_weekday_names_match_and_never_precede_now():
    names = {
        "lunes": 0,
        "martes": 1,
        "miércoles": 2,
        "miercoles": 2,
        "jueves": 3,
        "viernes": 4,
        "sábado": 5,
        "domingo": 6,
        "friday": 4,
        "sunday": 6,
    }
    for name, weekday in names.items():
        result = resolve(name)
        assert result.weekday() == weekday, f"{name} -> {result}"
        assert result > FIXED_NOW
        assert result - FIXED_NOW < timedelta(days=8)


def test_same_weekday_rolls_when_time_has_passed():
    # 20:00 today is still ahead of 09:00
    assert resolve("lunes") == datetime(2025, 3, 10, 20, 0, tzinfo=CARACAS)
    assert resolve("este lunes 8am") == datetime(2025, 3, 17, 8, 0, tzinfo=CARACAS)
    assert resolve("próximo lunes") == datetime(2025, 3, 17, 20, 0, tzinfo=CARACAS)
    assert resolve("viernes a las 7pm") == datetime(2025, 3, 14, 19, 0, tzinfo=CARACAS)


def test_empty_and_unparseable_phrases_fail_with_messages():
    empty = fixed_resolver().resolve("   ")
    assert isinstance(empty, UnresolvedDate)
    assert empty.reason == EMPTY_DATE
    assert empty.message

    unknown = fixed_resolver().resolve("cuando pueda")
    assert isinstance(unknown, UnresolvedDate)
    assert unknown.reason == UNPARSEABLE_DATE
    assert "cuando pueda" in unknown.message
    assert "2025-10-20" in unknown.message

    impossible = fixed_resolver().resolve("31/02/2025")
    assert isinstance(impossible, UnresolvedDate)


def test_time_extraction_helpers():
    assert extract_time_of_day("viernes 8pm") == TimeOfDay(20, 0)
    assert extract_time_of_day("20.10.2025") is None
    assert extract_time_of_day("a las 25") is None
    assert extract_time_of_day("sin hora") is None
    assert strip_time_of_day("mañana a las 7:30 pm") == "mañana"
    assert strip_time_of_day("may 31, 2025 at 7pm") == "may 31 2025"



def test_part_of_day_idioms_do_not_mean_tomorrow():
    print("Testing part-of-day idioms...")
    assert resolve("el sábado por la mañana") == datetime(2025, 3, 15, 20, 0, tzinfo=CARACAS)
    assert resolve("viernes en la mañana") == datetime(2025, 3, 14, 20, 0, tzinfo=CARACAS)
    assert resolve("saturday in the morning") == datetime(2025, 3, 15, 20, 0, tzinfo=CARACAS)
    assert resolve("hoy por la noche") == datetime(2025, 3, 10, 20, 0, tzinfo=CARACAS)
    # the bare word still means tomorrow
    assert resolve("mañana por la mañana") == datetime(2025, 3, 11, 20, 0, tzinfo=CARACAS)
    assert resolve("pasado mañana en la tarde") == datetime(2025, 3, 12, 20, 0, tzinfo=CARACAS)


def test_part_of_day_with_explicit_hour():
    assert resolve("el sábado a las 9 de la mañana") == datetime(2025, 3, 15, 9, 0, tzinfo=CARACAS)
    assert resolve("viernes a las 7 de la tarde") == datetime(2025, 3, 14, 19, 0, tzinfo=CARACAS)
    assert resolve("jueves a las 10 de la noche") == datetime(2025, 3, 13, 22, 0, tzinfo=CARACAS)
    assert extract_time_of_day("a las 7 de la tarde") == TimeOfDay(19, 0)
    assert extract_time_of_day("a las 7 pm de la tarde") == TimeOfDay(19, 0)
    assert strip_time_of_day("el sábado a las 9 de la mañana") == "el sábado"

def test_default_time_is_configurable():
    from event_assistant.tools import DateResolver

    resolver = DateResolver("America/Caracas", TimeOfDay(18, 30), clock=lambda: FIXED_NOW)
    result = resolver.resolve("mañana")
    assert isinstance(result, ResolvedDate)
    assert (result.timestamp.hour, result.timestamp.minute) == (18, 30)


if __name__ == "__main__":
    test_tomorrow_without_time_defaults_to_eight_pm()
    test_relative_keywords()
    test_iso_date_only_gets_default_time()
    test_iso_timestamp_round_trips_unchanged()
    test_naive_iso_timestamp_is_anchored_to_event_zone()
    test_explicit_times_are_normalized_to_24_hours()
    test_numeric_formats()
    test_short_date_infers_year_and_rolls_forward()
    test_month_names_in_both_languages()
    test_weekday_names_match_and_never_precede_now()
    test_same_weekday_rolls_when_time_has_passed()
    test_empty_and_unparseable_phrases_fail_with_messages()
    test_time_extraction_helpers()
    test_part_of_day_idioms_do_not_mean_tomorrow()
    test_part_of_day_with_explicit_hour()
    test_default_time_is_configurable()
    print("\n✅ All date resolver tests passed!")
