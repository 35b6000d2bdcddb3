"""
Shared pytest fixtures: settings pointing at tmp_path, a recording fake
gateway, a seeded allow-list and an initialized SQLite event store.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple

import pytest

from outreach.domain.classifier import IntentClassifier
from outreach.domain.conversation import InMemoryConversationStore
from outreach.infrastructure.config import (
    AllowListSettings,
    ConversationSettings,
    ReminderSettings,
    Settings,
    WhatsAppSettings,
)
from outreach.infrastructure.importer import AllowListProvider
from outreach.infrastructure.persistence import Database
from outreach.infrastructure.whatsapp import GatewayError, MessagingGateway

OPERATOR_ID = "573214498302"
CONFIRMATION_TEMPLATE = "https://example.com/confirmar_cita.php?id={id}"

# 2025-03-10 is a Monday
NOW = datetime(2025, 3, 10, 13, 30)


class FakeGateway(MessagingGateway):
    """Records every dispatch; methods listed in `fail` raise GatewayError."""

    def __init__(self, known: Optional[Set[str]] = None, fail: Sequence[str] = ()):
        super().__init__()
        self.known = known
        self.fail = set(fail)
        self.calls: List[Tuple] = []
        self.started = False
        self.closed = False

    def _record(self, method: str, *args) -> None:
        if method in self.fail:
            raise GatewayError(f"{method} failed")
        self.calls.append((method,) + args)

    async def start(self) -> None:
        self.started = True

    async def is_known_contact(self, chat_id: str) -> bool:
        return self.known is None or chat_id in self.known

    async def send_text(self, chat_id: str, text: str) -> None:
        self._record("send_text", chat_id, text)

    async def send_media(self, chat_id: str, mime_type: str, base64_payload: str, caption: str = "") -> None:
        self._record("send_media", chat_id, mime_type, base64_payload, caption)

    async def send_choice_prompt(self, chat_id, prompt, options, title="", footer="") -> None:
        self._record("send_choice_prompt", chat_id, prompt, list(options), title, footer)

    async def close(self) -> None:
        self.closed = True

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def media_files(tmp_path):
    material = tmp_path / "material"
    material.mkdir()
    document = material / "brochure.pdf"
    document.write_bytes(b"%PDF-1.4 test")
    image = material / "precios.jpeg"
    image.write_bytes(b"\xff\xd8\xff\xe0 test")
    return document, image


@pytest.fixture
def allowlist_file(tmp_path):
    path = tmp_path / "EnvioWS.csv"
    path.write_text("nombre,celular\nAna,3001112233\nLuis,573005556677\n", encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path, media_files, allowlist_file):
    document, image = media_files
    return Settings(
        whatsapp=WhatsAppSettings(
            profile_dir=tmp_path / "profile",
            country_code="57",
            operator_id=OPERATOR_ID,
        ),
        allowlist=AllowListSettings(source_file=allowlist_file, watch_interval=0.01),
        conversation=ConversationSettings(
            document_path=document,
            image_path=image,
            persist_state=False,
        ),
        reminders=ReminderSettings(
            enabled=True,
            interval_seconds=60,
            window_min_minutes=57,
            window_max_minutes=63,
            categories=frozenset({1, 3, 4, 6, 12, 13}),
            confirmation_url_template=CONFIRMATION_TEMPLATE,
            timezone="America/Bogota",
        ),
        database_file=tmp_path / "outreach.db",
    )


@pytest.fixture
def allowlist(allowlist_file):
    provider = AllowListProvider(allowlist_file)
    provider.reload()
    return provider


@pytest.fixture
def classifier(settings):
    return IntentClassifier(
        settings.conversation.affirmative_phrases,
        settings.conversation.negative_phrases,
    )


@pytest.fixture
def states():
    return InMemoryConversationStore()


@pytest.fixture
def database(settings):
    db = Database(str(settings.database_file))
    db.init()
    return db
