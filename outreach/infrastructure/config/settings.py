"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclasses for safety and clarity
- Single source of truth for all configurable values

Engine components receive a Settings instance through their constructors;
only the entry points call get_settings().
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_list(name: str, default: Tuple[str, ...], sep: str = ",") -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(sep) if item.strip())


DEFAULT_AFFIRMATIVE_PHRASES = (
    "si",
    "sí",
    "interesado",
    "quiero informacion",
    "quiero mas informacion",
    "más informacion",
    "mas informacion",
    "informacion",
    "de que se trata",
    "como es",
    "si estoy interesada",
    "si estoy interesado",
)

DEFAULT_NEGATIVE_PHRASES = (
    "no",
    "no estoy interesado",
    "no me interesa",
    "ya no me interesa",
    "no gracias",
    "no sra gracias",
    "no señora gracias",
    "ya no estoy interesada",
    "no, no me interesa adquirirlo en este momento",
    "no, no estoy interesado en ningún producto",
    "no ya no estoy interesado muchas gracias",
    "en el momento no me interesa",
    "no, ya no estoy interesado en adquirirlo en este momento.",
)


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp Web session and gateway settings."""

    # Chrome user-data-dir holding the paired session
    profile_dir: Path = field(
        default_factory=lambda: Path(os.getenv("WHATSAPP_PROFILE_DIR", "whatsapp_profile"))
    )

    # Browser settings
    headless: bool = field(default_factory=lambda: _env_bool("WHATSAPP_HEADLESS", False))
    login_timeout: int = field(default_factory=lambda: _env_int("WHATSAPP_LOGIN_TIMEOUT", 300))

    # Seconds between unread-chat scans for inbound messages
    inbound_poll_interval: int = field(
        default_factory=lambda: _env_int("WHATSAPP_INBOUND_POLL_SECONDS", 5)
    )

    # National prefix prepended to store phones and stripped from replies
    country_code: str = field(default_factory=lambda: os.getenv("COUNTRY_CODE", "57"))

    # Operator that receives a copy of every reminder
    operator_id: str = field(default_factory=lambda: os.getenv("OPERATOR_ID", "573214498302"))


@dataclass(frozen=True)
class AllowListSettings:
    """Allow-list source file and watcher settings."""

    source_file: Path = field(
        default_factory=lambda: Path(os.getenv("ALLOWLIST_FILE", "EnvioWS.csv"))
    )

    # mtime poll interval for change detection (seconds)
    watch_interval: float = field(
        default_factory=lambda: float(os.getenv("ALLOWLIST_WATCH_SECONDS", "5"))
    )


@dataclass(frozen=True)
class ConversationSettings:
    """Intent phrase sets and the canned content of the interest conversation."""

    affirmative_phrases: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("AFFIRMATIVE_PHRASES", DEFAULT_AFFIRMATIVE_PHRASES, "|")
    )
    negative_phrases: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("NEGATIVE_PHRASES", DEFAULT_NEGATIVE_PHRASES, "|")
    )

    positive_reply: str = "Gracias por tu interés. Te enviaré más información."
    negative_reply: str = "Entendido. Si cambias de opinión, estoy para ayudarte."

    document_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("DOCUMENT_PATH", "material/Comparativo_PAC_medico_2023.pdf")
        )
    )
    document_caption: str = (
        "Tu salud merece comodidad y calidad. "
        "Con el Plan Alfa tienes consulta médica domiciliaria y más."
    )

    image_path: Path = field(
        default_factory=lambda: Path(os.getenv("IMAGE_PATH", "material/precios.jpeg"))
    )
    image_caption: str = "Tarifas. ¿En qué momento le puedo llamar?"

    choice_prompt: str = "¿Qué deseas hacer ahora?"
    choice_options: Tuple[str, ...] = ("Ver más", "Contactar", "No gracias")
    choice_title: str = "Información adicional"
    choice_footer: str = "Selecciona una opción"

    # Keep conversation states in SQLite instead of process memory
    persist_state: bool = field(
        default_factory=lambda: _env_bool("CONVERSATION_PERSIST_STATE", False)
    )


@dataclass(frozen=True)
class ReminderSettings:
    """Appointment reminder job settings."""

    enabled: bool = field(default_factory=lambda: _env_bool("REMINDERS_ENABLED", True))
    interval_seconds: int = field(
        default_factory=lambda: _env_int("REMINDER_INTERVAL_SECONDS", 60)
    )

    # Minutes-before-appointment eligibility window (inclusive)
    window_min_minutes: int = field(
        default_factory=lambda: _env_int("REMINDER_WINDOW_MIN", 57)
    )
    window_max_minutes: int = field(
        default_factory=lambda: _env_int("REMINDER_WINDOW_MAX", 63)
    )

    categories: FrozenSet[int] = field(
        default_factory=lambda: frozenset(
            int(c) for c in _env_list("REMINDER_CATEGORIES", ("1", "3", "4", "6", "12", "13"))
        )
    )

    confirmation_url_template: str = field(
        default_factory=lambda: os.getenv(
            "CONFIRMATION_URL_TEMPLATE",
            "https://YOUR_DOMAIN/confirmar_cita.php?id={id}",
        )
    )

    timezone: str = field(default_factory=lambda: os.getenv("TIMEZONE", "America/Bogota"))

    confirmed_reply: str = "✅ ¡Gracias por confirmar tu asistencia!"
    declined_reply: str = (
        "❌ Hemos registrado que no asistirás. Por favor contacta para reprogramar."
    )


@dataclass(frozen=True)
class WebSettings:
    """HTTP surface settings."""

    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from outreach.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.reminders.window_min_minutes)
    """

    # Sub-settings groups
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    allowlist: AllowListSettings = field(default_factory=AllowListSettings)
    conversation: ConversationSettings = field(default_factory=ConversationSettings)
    reminders: ReminderSettings = field(default_factory=ReminderSettings)
    web: WebSettings = field(default_factory=WebSettings)

    # File paths
    database_file: Path = field(
        default_factory=lambda: Path(os.getenv("DATABASE_FILE", "outreach.db"))
    )

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if "YOUR_DOMAIN" in self.reminders.confirmation_url_template:
            issues.append(
                "WARNING: CONFIRMATION_URL_TEMPLATE contains placeholder. "
                "Set your actual confirmation page."
            )

        if "{id}" not in self.reminders.confirmation_url_template:
            issues.append(
                "WARNING: CONFIRMATION_URL_TEMPLATE has no {id} field. "
                "Reminder links will not identify the appointment."
            )

        if self.reminders.window_min_minutes > self.reminders.window_max_minutes:
            issues.append(
                "ERROR: REMINDER_WINDOW_MIN is greater than REMINDER_WINDOW_MAX. "
                "No reminder will ever be eligible."
            )

        if not self.allowlist.source_file.exists():
            issues.append(
                f"WARNING: Allow-list file not found: {self.allowlist.source_file}. "
                "No inbound message will be answered until it exists."
            )

        for media in (self.conversation.document_path, self.conversation.image_path):
            if not media.exists():
                issues.append(
                    f"WARNING: Media file not found: {media}. "
                    "That follow-up step will be skipped."
                )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
