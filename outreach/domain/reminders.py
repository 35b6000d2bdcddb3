"""
Appointment Reminders - Pure Formatting and Matching Rules
===========================================================

Everything here is deterministic and side-effect free:
- ReminderEvent: one appointment row as read from the event store
- Schedule parsing, minutes-until computation and Spanish date formatting
- Customer/operator message composition
- Parsing of SI/NO confirmation replies
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from .classifier import normalize

logger = logging.getLogger(__name__)

DATE_PLACEHOLDER = "Fecha no registrada"
TIME_PLACEHOLDER = "Hora no registrada"

WEEKDAYS_ES = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
MONTHS_ES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)

CONFIRM_TOKEN = "SI"
DECLINE_TOKEN = "NO"

# "SI", "no", "SI 42", "NO #42"
_CONFIRMATION_RE = re.compile(r"^(SI|NO)(?:\s*#?\s*(\d+))?$")

CUSTOMER_TEMPLATE = (
    "📅 *Recordatorio de Cita*\n\n"
    "👤 Cliente: *{name}*\n"
    "📱 Teléfono: {phone}\n"
    "🗓️ Fecha: {date}\n"
    "⏰ Hora: {time}\n"
    "📌 Estado: {category}\n\n"
    "🔗 Por favor confirma tu asistencia aquí:\n{link}"
)

REPLY_INSTRUCTIONS = (
    "\n\nPor favor responde con:\n"
    "✅ *SI* para confirmar\n"
    "❌ *NO* para cancelar o reprogramar\n"
    "(Reply *SI* to confirm or *NO* to cancel / reschedule)"
)

OPERATOR_TEMPLATE = (
    "📢 *Recordatorio asignado*\n\n"
    "👤 Cliente: *{name}*\n"
    "📱 Teléfono: {phone}\n"
    "🗓️ Fecha: {date}\n"
    "⏰ Hora: {time}\n"
    "📌 Estado: {category}\n\n"
    "🔗 Contactar cliente: https://wa.me/{international}"
)


@dataclass
class ReminderEvent:
    """Appointment row from the event store."""
    id: int
    category_id: int
    category: str
    subject_name: str
    contact_phone: str
    scheduled_date: str
    scheduled_time: str
    sent: bool = False
    confirmed: str = ""
    sent_at: str = ""


@dataclass(frozen=True)
class Confirmation:
    """A parsed SI/NO reply, optionally naming the reminder id."""
    answer: str
    event_id: Optional[int] = None

    @property
    def confirmed(self) -> bool:
        return self.answer == CONFIRM_TOKEN


# ── Phone helpers ─────────────────────────────────────────────────

def digits_only(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"\D", "", str(value))


def national_number(contact_id: str, country_code: str) -> str:
    """"573001112233@c.us" -> "3001112233" (country code stripped)."""
    digits = digits_only(contact_id.split("@", 1)[0])
    if country_code and digits.startswith(country_code) and len(digits) - len(country_code) >= 10:
        return digits[len(country_code):]
    return digits


def international_number(phone: str, country_code: str) -> str:
    """"300 111 2233" -> "573001112233"; already prefixed numbers are kept."""
    digits = digits_only(phone)
    if not digits:
        return ""
    if country_code and digits.startswith(country_code) and len(digits) - len(country_code) >= 10:
        return digits
    return f"{country_code}{digits}"


# ── Schedule helpers ──────────────────────────────────────────────

def _clean_date(date_str: Optional[str]) -> str:
    date_str = (date_str or "").strip()
    if re.fullmatch(r"\d{8}", date_str):
        return f"{date_str[0:4]}-{date_str[4:6]}-{date_str[6:8]}"
    return date_str[:10]


def parse_schedule(date_str: Optional[str], time_str: Optional[str]) -> Optional[datetime]:
    """
    Combine stored date and time into a naive datetime.

    Accepts "YYYY-MM-DD" or "YYYYMMDD"; the time is truncated to "HH:mm".
    Returns None when either part is missing or invalid.
    """
    if not date_str or not time_str:
        return None

    date_clean = _clean_date(date_str)
    time_clean = str(time_str).strip()[:5]

    try:
        return datetime.strptime(f"{date_clean} {time_clean}", "%Y-%m-%d %H:%M")
    except ValueError:
        logger.warning(f"Invalid schedule: {date_str!r} {time_str!r}")
        return None


def minutes_until(scheduled: datetime, now: datetime) -> int:
    """Whole minutes from `now` (truncated to the minute) to `scheduled`."""
    now_minute = now.replace(second=0, microsecond=0)
    return int((scheduled - now_minute).total_seconds() // 60)


def format_spanish_date(value: datetime) -> str:
    """datetime(2025, 3, 10) -> "lunes, 10 de marzo de 2025"."""
    weekday = WEEKDAYS_ES[value.weekday()]
    month = MONTHS_ES[value.month - 1]
    return f"{weekday}, {value.day} de {month} de {value.year}"


def format_schedule(date_str: Optional[str], time_str: Optional[str]) -> Tuple[str, str]:
    """Human date and 24h time, or placeholders when the schedule is unusable."""
    scheduled = parse_schedule(date_str, time_str)
    if scheduled is None:
        return DATE_PLACEHOLDER, TIME_PLACEHOLDER
    return format_spanish_date(scheduled), scheduled.strftime("%H:%M")


# ── Messages ──────────────────────────────────────────────────────

def compose_customer_message(event: ReminderEvent, link_template: str) -> str:
    date_text, time_text = format_schedule(event.scheduled_date, event.scheduled_time)
    body = CUSTOMER_TEMPLATE.format(
        name=event.subject_name or "Desconocido",
        phone=event.contact_phone or "No registrado",
        date=date_text,
        time=time_text,
        category=event.category or "N/A",
        link=link_template.format(id=event.id),
    )
    return body + REPLY_INSTRUCTIONS


def compose_operator_message(event: ReminderEvent, country_code: str) -> str:
    date_text, time_text = format_schedule(event.scheduled_date, event.scheduled_time)
    return OPERATOR_TEMPLATE.format(
        name=event.subject_name or "Desconocido",
        phone=event.contact_phone,
        date=date_text,
        time=time_text,
        category=event.category or "N/A",
        international=international_number(event.contact_phone, country_code),
    )


def parse_confirmation(body: str) -> Optional[Confirmation]:
    """
    "Sí" -> Confirmation("SI"); "no #42" -> Confirmation("NO", 42).
    Anything else -> None.
    """
    match = _CONFIRMATION_RE.match(normalize(body).upper())
    if not match:
        return None
    answer, event_id = match.groups()
    return Confirmation(answer=answer, event_id=int(event_id) if event_id else None)
