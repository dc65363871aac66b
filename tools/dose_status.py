"""
Dose Status Machine
Guards and applies Pending -> Completed / Not Required transitions on a reminder
"""

import logging
from typing import Awaitable, Callable, Optional, Union
from dataclasses import dataclass
from datetime import datetime

from models import DoseStatus
from tools.reminder_grouper import ReminderRecord
from tools.time_window import is_window_open


logger = logging.getLogger(__name__)


# ==================== ERRORS ====================

class TransitionGuardViolation(Exception):
    """A transition was requested while the reminder may not change status"""

    def __init__(self, reminder_id: int, reason: str):
        self.reminder_id = reminder_id
        self.reason = reason
        super().__init__(f"Reminder {reminder_id}: {reason}")


class TransitionInFlight(TransitionGuardViolation):
    """A status change for this reminder has not settled yet"""

    def __init__(self, reminder_id: int):
        super().__init__(reminder_id, "a status update is already in progress")


class MutationFailure(Exception):
    """The mutation collaborator rejected or could not record a status change"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ==================== MUTATION RESULT ====================

@dataclass(frozen=True)
class GivenTimeEchoed:
    """The backend returned the authoritative administration time"""
    given_time: str


@dataclass(frozen=True)
class GivenTimeAbsent:
    """The backend accepted the change without echoing a time"""


MutationResult = Union[GivenTimeEchoed, GivenTimeAbsent]

# mutate(reminder_id, new_status, medication_time) -> MutationResult
MutateDoseStatus = Callable[..., Awaitable[MutationResult]]


def resolve_given_time(result: MutationResult, now: datetime) -> str:
    """Prefer the echoed timestamp, fall back to the local clock"""
    if isinstance(result, GivenTimeEchoed) and result.given_time:
        return result.given_time
    return now.isoformat()


@dataclass
class TransitionOutcome:
    """Result of a successful status change"""
    reminder: ReminderRecord
    previous_status: DoseStatus
    dose_status: DoseStatus
    given_time: str
    given_time_echoed: bool


# ==================== STATE MACHINE ====================

TERMINAL_STATUSES = (DoseStatus.COMPLETED, DoseStatus.NOT_REQUIRED)


class DoseStatusMachine:
    """
    Per-reminder dose status rules.

    Pending may move to Completed or Not Required; both are terminal.
    The machine keeps no state of its own: callers pass the reminder,
    whether its date is the active (today's) date, and the clock.
    """

    def __init__(
        self,
        window_policy: Callable[[Optional[str], Optional[datetime]], bool] = is_window_open,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.window_policy = window_policy
        self.clock = clock

    def blocking_reason(
        self,
        reminder: ReminderRecord,
        is_active_date: bool,
        now: Optional[datetime] = None
    ) -> Optional[str]:
        """Explain why a transition is not allowed, or None if it is"""
        if reminder.dose_status is not DoseStatus.PENDING:
            return f"dose is already {reminder.status_label}"
        if not is_active_date:
            return "only today's doses can be updated"
        if not self.window_policy(reminder.medication_time, now or self.clock()):
            return "administration window has not started"
        return None

    def can_transition(
        self,
        reminder: ReminderRecord,
        is_active_date: bool,
        now: Optional[datetime] = None
    ) -> bool:
        """Check whether a status control should be offered for this reminder"""
        return self.blocking_reason(reminder, is_active_date, now) is None

    async def transition(
        self,
        reminder: ReminderRecord,
        new_status: DoseStatus,
        mutate: MutateDoseStatus,
        is_active_date: bool,
        now: Optional[datetime] = None
    ) -> TransitionOutcome:
        """
        Record a new dose status through the mutation collaborator and
        apply it to the in-memory reminder.

        Args:
            reminder: Reminder to update (patched in place on success)
            new_status: Completed or Not Required
            mutate: Async collaborator recording the change
            is_active_date: Whether the reminder belongs to today's schedule
            now: Clock override

        Returns:
            TransitionOutcome describing the applied change

        Raises:
            TransitionGuardViolation: the change is not allowed; mutate is not called
            MutationFailure: the collaborator failed; the reminder is unchanged
        """
        now = now or self.clock()

        try:
            target = DoseStatus(new_status)
        except ValueError:
            raise TransitionGuardViolation(reminder.id, f"unknown dose status {new_status!r}")
        if target not in TERMINAL_STATUSES:
            raise TransitionGuardViolation(
                reminder.id, f"cannot move a dose to {target.label}"
            )

        reason = self.blocking_reason(reminder, is_active_date, now)
        if reason:
            raise TransitionGuardViolation(reminder.id, reason)

        result = await mutate(reminder.id, target, reminder.medication_time or "")

        given_time = resolve_given_time(result, now)
        previous = reminder.dose_status
        reminder.dose_status = target
        reminder.given_time = given_time

        logger.info(
            f"Reminder {reminder.id} moved from {previous.label} to {target.label} "
            f"at {given_time}"
        )
        return TransitionOutcome(
            reminder=reminder,
            previous_status=previous,
            dose_status=target,
            given_time=given_time,
            given_time_echoed=isinstance(result, GivenTimeEchoed),
        )


dose_status_machine = DoseStatusMachine()
