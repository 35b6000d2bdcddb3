"""Reminder Scheduler for appointment reminders.

APScheduler-based async job that, on every tick, sends a WhatsApp reminder
to customers whose appointment is about one hour away, copies the operator,
and flags the row as sent. Also stores the SI/NO answers customers reply with.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pytz import timezone

from ..domain.events import MessageReceived
from ..domain.reminders import (
    ReminderEvent,
    compose_customer_message,
    compose_operator_message,
    digits_only,
    international_number,
    national_number,
    parse_confirmation,
)
from ..infrastructure.config import ReminderSettings, WhatsAppSettings
from ..infrastructure.persistence import Database, EventStoreSession
from ..infrastructure.whatsapp import MessagingGateway

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """Counters of one reminder tick."""
    eligible: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    aborted: bool = False


class ReminderScheduler:
    """Appointment reminder job.

    Ticks never overlap: APScheduler runs at most one instance, and a direct
    run_tick() call while a tick is in progress returns None.
    """

    JOB_ID = "appointment_reminders"

    def __init__(
        self,
        gateway: MessagingGateway,
        database: Database,
        settings: ReminderSettings,
        whatsapp: WhatsAppSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize scheduler.

        Args:
            gateway: Messaging gateway used for every dispatch.
            database: Event store holding the appointment rows.
            settings: Interval, window, categories and message settings.
            whatsapp: Country code and operator identifier.
            clock: Returns the current aware datetime (tests pin it).
        """
        self._gateway = gateway
        self._db = database
        self._settings = settings
        self._whatsapp = whatsapp
        self.tz = timezone(settings.timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))

        self._tick_lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Start the scheduler."""
        if not self._settings.enabled:
            logger.info("ReminderScheduler is disabled, skipping start")
            return

        if self._is_running:
            logger.warning("ReminderScheduler already running")
            return

        scheduler = AsyncIOScheduler(timezone=self.tz)
        self._scheduler = scheduler

        scheduler.add_job(
            self.run_tick,
            IntervalTrigger(seconds=self._settings.interval_seconds, timezone=self.tz),
            id=self.JOB_ID,
            name="Appointment Reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        scheduler.start()
        self._is_running = True
        logger.info(
            f"ReminderScheduler started: every {self._settings.interval_seconds}s, "
            f"window {self._settings.window_min_minutes}-{self._settings.window_max_minutes} min"
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._is_running:
            self._scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("ReminderScheduler stopped")

    async def run_tick(self, now: Optional[datetime] = None) -> Optional[TickReport]:
        """Send every due reminder once. Returns None if a tick is already running."""
        if self._tick_lock.locked():
            logger.warning("Previous reminder tick still running, skipping this one")
            return None

        async with self._tick_lock:
            now = now or self._clock()
            report = TickReport()
            logger.info("Running reminder tick...")

            try:
                with self._db.session() as session:
                    events = session.fetch_due_reminders(
                        self._settings.categories,
                        now,
                        self._settings.window_min_minutes,
                        self._settings.window_max_minutes,
                    )
                    report.eligible = len(events)
                    logger.info(f"Reminders due: {len(events)}")

                    for event in events:
                        await self._process_event(session, event, report, now)

            except Exception as e:
                report.aborted = True
                logger.error(f"Reminder tick aborted: {e}", exc_info=True)

            return report

    async def _process_event(
        self,
        session: EventStoreSession,
        event: ReminderEvent,
        report: TickReport,
        now: datetime,
    ) -> None:
        if not digits_only(event.contact_phone):
            report.skipped += 1
            logger.warning(f"Reminder {event.id} has no contact phone, skipped")
            return

        country_code = self._whatsapp.country_code

        try:
            customer_id = international_number(event.contact_phone, country_code)
            text = compose_customer_message(event, self._settings.confirmation_url_template)
            await self._gateway.send_text(customer_id, text)
            session.mark_sent(event.id, now.replace(tzinfo=None))
            report.sent += 1
            logger.info(f"Reminder sent to customer {event.subject_name} (event {event.id})")
        except Exception as e:
            report.failed += 1
            logger.error(f"Failed to process reminder {event.id}: {e}", exc_info=True)
            return

        try:
            operator_text = compose_operator_message(event, country_code)
            await self._gateway.send_text(self._whatsapp.operator_id, operator_text)
            logger.info(f"Operator copy sent for {event.subject_name}")
        except Exception as e:
            logger.error(f"Failed to send operator copy for reminder {event.id}: {e}", exc_info=True)

    async def handle_confirmation(self, message: MessageReceived) -> bool:
        """
        Store a SI/NO reply on the reminder it answers and acknowledge it.
        Returns False when the message is not a confirmation for any reminder.
        """
        confirmation = parse_confirmation(message.body)
        if confirmation is None:
            return False

        phone = national_number(message.contact_id, self._whatsapp.country_code)
        today = self._clock().date()

        try:
            with self._db.session() as session:
                event_id = session.record_confirmation(
                    phone,
                    confirmation.answer,
                    today,
                    confirmation.event_id,
                    country_code=self._whatsapp.country_code,
                )
        except Exception as e:
            logger.error(f"Failed to store confirmation from {phone}: {e}", exc_info=True)
            return False

        if event_id is None:
            logger.info(f"No sent reminder today for {phone}; {confirmation.answer!r} not stored")
            return False

        logger.info(f"Confirmation stored: {message.sender} -> {confirmation.answer} (event {event_id})")

        reply = self._settings.confirmed_reply if confirmation.confirmed else self._settings.declined_reply
        try:
            await self._gateway.send_text(message.sender, reply)
        except Exception as e:
            logger.error(f"Failed to acknowledge confirmation from {phone}: {e}", exc_info=True)

        return True
