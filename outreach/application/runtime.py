"""
Outreach Runtime - Wiring and Lifecycle
========================================

Builds every component from a Settings instance and owns the background
tasks (gateway session, event dispatcher, allow-list watcher, reminder job).
Both the web server and the headless runner start the same runtime.
"""

import asyncio
import logging
from typing import List, Optional

from ..domain.classifier import IntentClassifier
from ..domain.conversation import ConversationStore, InMemoryConversationStore
from ..infrastructure.config import Settings
from ..infrastructure.importer import AllowListProvider
from ..infrastructure.persistence import Database, SqliteConversationStore
from ..infrastructure.whatsapp import MessagingGateway, SeleniumGateway, ensure_session_folder
from .dispatcher import EventDispatcher, SessionStatus
from .inbound import InboundMessageHandler
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


class OutreachRuntime:
    """
    Usage:
        runtime = OutreachRuntime(get_settings())
        await runtime.start()
        ...
        await runtime.stop()

    Pass `gateway` to replace the Selenium session (tests, other backends).
    """

    def __init__(self, settings: Settings, gateway: Optional[MessagingGateway] = None):
        self.settings = settings
        self._owns_gateway = gateway is None
        self.gateway = gateway or SeleniumGateway(settings.whatsapp)

        self.database = Database(str(settings.database_file))
        self.allowlist = AllowListProvider(settings.allowlist.source_file)
        self.classifier = IntentClassifier(
            settings.conversation.affirmative_phrases,
            settings.conversation.negative_phrases,
        )
        self.states: ConversationStore = (
            SqliteConversationStore(self.database)
            if settings.conversation.persist_state
            else InMemoryConversationStore()
        )
        self.scheduler = ReminderScheduler(
            self.gateway, self.database, settings.reminders, settings.whatsapp
        )
        self.inbound = InboundMessageHandler(
            self.gateway,
            self.allowlist,
            self.classifier,
            self.states,
            settings.conversation,
            confirmation_handler=(
                self.scheduler.handle_confirmation if settings.reminders.enabled else None
            ),
        )
        self.status = SessionStatus()
        self.dispatcher = EventDispatcher(self.gateway.events, self.inbound, self.status)

        self._tasks: List[asyncio.Task] = []

    def prepare(self) -> None:
        """Synchronous startup checks: settings, session folder, database, allow-list."""
        for issue in self.settings.validate():
            logger.warning(issue)

        if self._owns_gateway:
            ensure_session_folder(self.settings.whatsapp.profile_dir)

        self.database.init()
        self.allowlist.reload()

    async def start(self) -> None:
        self.prepare()

        self._tasks.append(asyncio.create_task(self.dispatcher.run(), name="event-dispatcher"))
        self._tasks.append(
            asyncio.create_task(
                self.allowlist.watch(self.settings.allowlist.watch_interval),
                name="allowlist-watcher",
            )
        )

        try:
            await self.gateway.start()
            await self.scheduler.start()
        except Exception as e:
            logger.error(f"Outreach runtime failed to start: {e}")
            await self._cancel_tasks()
            raise

        logger.info("Outreach runtime started")

    async def _cancel_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self._cancel_tasks()

        await self.gateway.close()
        logger.info("Outreach runtime stopped")
