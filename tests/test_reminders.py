"""
Reminder formatting, phone helpers and confirmation parsing.
"""

from datetime import datetime

import pytest

from outreach.domain.reminders import (
    DATE_PLACEHOLDER,
    TIME_PLACEHOLDER,
    ReminderEvent,
    compose_customer_message,
    compose_operator_message,
    format_schedule,
    international_number,
    minutes_until,
    national_number,
    parse_confirmation,
    parse_schedule,
)


def _event(**overrides) -> ReminderEvent:
    fields = dict(
        id=42,
        category_id=1,
        category="Cita agendada",
        subject_name="Ana Pérez",
        contact_phone="3001112233",
        scheduled_date="2025-03-10",
        scheduled_time="14:30",
    )
    fields.update(overrides)
    return ReminderEvent(**fields)


class TestFormatSchedule:

    def test_compact_date_and_long_time(self):
        assert format_schedule("20250310", "14:305") == ("lunes, 10 de marzo de 2025", "14:30")

    def test_delimited_date(self):
        assert format_schedule("2025-12-25", "09:05:00") == ("jueves, 25 de diciembre de 2025", "09:05")

    @pytest.mark.parametrize("date_str, time_str", [
        (None, "14:30"),
        ("2025-03-10", None),
        ("", ""),
        ("2025-02-30", "14:30"),
        ("10/03/2025", "14:30"),
        ("2025-03-10", "25:99"),
    ])
    def test_placeholders(self, date_str, time_str):
        assert format_schedule(date_str, time_str) == (DATE_PLACEHOLDER, TIME_PLACEHOLDER)

    def test_parse_schedule(self):
        assert parse_schedule("20250310", "14:30") == datetime(2025, 3, 10, 14, 30)


class TestMinutesUntil:

    def test_whole_minutes(self):
        scheduled = datetime(2025, 3, 10, 14, 30)
        assert minutes_until(scheduled, datetime(2025, 3, 10, 13, 30)) == 60
        assert minutes_until(scheduled, datetime(2025, 3, 10, 13, 33)) == 57

    def test_seconds_of_now_are_ignored(self):
        scheduled = datetime(2025, 3, 10, 14, 30)
        assert minutes_until(scheduled, datetime(2025, 3, 10, 13, 26, 59)) == 64
        assert minutes_until(scheduled, datetime(2025, 3, 10, 13, 27, 1)) == 63

    def test_past_is_negative(self):
        assert minutes_until(datetime(2025, 3, 10, 14, 0), datetime(2025, 3, 10, 15, 0)) == -60


class TestPhones:

    def test_national_number_strips_country_code(self):
        assert national_number("573001112233@c.us", "57") == "3001112233"

    def test_national_number_keeps_short_numbers(self):
        assert national_number("5730011122@c.us", "57") == "5730011122"

    def test_international_number(self):
        assert international_number("300 111 2233", "57") == "573001112233"
        assert international_number("573001112233", "57") == "573001112233"
        assert international_number("", "57") == ""


class TestMessages:

    def test_customer_message(self):
        text = compose_customer_message(_event(), "https://example.com/confirmar?id={id}")

        assert "*Ana Pérez*" in text
        assert "3001112233" in text
        assert "lunes, 10 de marzo de 2025" in text
        assert "14:30" in text
        assert "Cita agendada" in text
        assert "https://example.com/confirmar?id=42" in text
        assert "*SI*" in text and "*NO*" in text

    def test_customer_message_defaults(self):
        text = compose_customer_message(
            _event(subject_name="", category="", scheduled_date=""), "https://x/?id={id}"
        )

        assert "Desconocido" in text
        assert "N/A" in text
        assert DATE_PLACEHOLDER in text
        assert TIME_PLACEHOLDER in text

    def test_operator_message_has_deep_link(self):
        text = compose_operator_message(_event(), "57")

        assert "https://wa.me/573001112233" in text
        assert "*Ana Pérez*" in text
        assert "14:30" in text


class TestParseConfirmation:

    @pytest.mark.parametrize("body", ["SI", "si", " Sí ", "SÍ"])
    def test_confirm(self, body):
        confirmation = parse_confirmation(body)
        assert confirmation.answer == "SI"
        assert confirmation.confirmed
        assert confirmation.event_id is None

    def test_decline_with_event_id(self):
        confirmation = parse_confirmation("no #42")
        assert confirmation.answer == "NO"
        assert not confirmation.confirmed
        assert confirmation.event_id == 42

    @pytest.mark.parametrize("body", ["", "sip", "si claro", "no gracias", "42"])
    def test_not_a_confirmation(self, body):
        assert parse_confirmation(body) is None
