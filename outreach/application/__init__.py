# Application Layer
# =================
# Use cases and orchestration: inbound message handling, gateway event
# dispatch, the appointment reminder job and the runtime that wires them.
from .dispatcher import EventDispatcher, SessionStatus
from .inbound import InboundMessageHandler, InboundOutcome
from .runtime import OutreachRuntime
from .scheduler import ReminderScheduler, TickReport

__all__ = [
    "EventDispatcher",
    "InboundMessageHandler",
    "InboundOutcome",
    "OutreachRuntime",
    "ReminderScheduler",
    "SessionStatus",
    "TickReport",
]
