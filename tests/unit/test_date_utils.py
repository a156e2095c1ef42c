from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from record_sync.shared.utils.date_utils import (
    cell_to_text,
    ensure_utc,
    is_blank,
    normalize_key_part,
    parse_date_like,
)


NEW_YORK_EDT = timezone(timedelta(hours=-4))


def test_normalize_aware_datetime_uses_utc_day():
    # 22:00 del 30 en Nueva York = 02:00 del 31 en UTC
    value = datetime(2024, 10, 30, 22, 0, tzinfo=NEW_YORK_EDT)
    assert normalize_key_part(value) == "2024-10-31"
    assert normalize_key_part("2024-10-31") == "2024-10-31"


def test_normalize_iso_datetime_string_with_z():
    assert normalize_key_part("2024-10-31T02:00:00Z") == "2024-10-31"
    assert normalize_key_part("2024-10-30T22:00:00-04:00") == "2024-10-31"


def test_normalize_compact_offset_and_long_fraction():
    # +HHMM y fracciones de 7 dígitos (formato .NET) también son fechas
    assert normalize_key_part("2024-10-30T22:00:00-0400") == "2024-10-31"
    assert normalize_key_part("2024-10-31T01:30:00.1234567+0200") == "2024-10-30"
    assert parse_date_like("2024-10-31 12:00:00.5+05:30") == date(2024, 10, 31)


def test_normalize_naive_datetime_is_treated_as_utc():
    assert normalize_key_part(datetime(2024, 1, 5, 23, 59)) == "2024-01-05"


def test_normalize_us_date_string():
    assert normalize_key_part("10/31/2024") == "2024-10-31"
    assert normalize_key_part(date(2024, 10, 31)) == "2024-10-31"


def test_normalize_text_is_trimmed_and_lowercased():
    assert normalize_key_part("  Acme Tower ") == "acme tower"
    assert normalize_key_part("") == ""
    assert normalize_key_part(None) == ""


def test_normalize_integral_numbers_match_their_text():
    assert normalize_key_part(42.0) == normalize_key_part("42")
    assert normalize_key_part(Decimal("7.00")) == "7"


def test_parse_date_like_rejects_invalid_dates():
    assert parse_date_like("2024-02-30") is None
    assert parse_date_like("13/45/2024") is None
    assert parse_date_like("Acme 2024") is None


def test_cell_to_text_keeps_case():
    assert cell_to_text(" SF-1 ") == "SF-1"
    assert cell_to_text(True) == "true"
    assert cell_to_text(None) == ""


def test_ensure_utc_converts_offsets():
    value = ensure_utc(datetime(2024, 10, 30, 22, 0, tzinfo=NEW_YORK_EDT))
    assert value == datetime(2024, 10, 31, 2, 0, tzinfo=timezone.utc)
    assert value.tzinfo is timezone.utc


def test_is_blank():
    assert is_blank(None)
    assert is_blank("   ")
    assert not is_blank(0)
    assert not is_blank(False)
