"""
Schedule View
Owns a timeline's date buckets: polling, date selection and dose status updates
"""

import asyncio
import logging
from collections import OrderedDict
from contextlib import suppress
from typing import Callable, List, Mapping, Optional, Protocol, Set
from dataclasses import dataclass
from datetime import datetime

from config import get_settings
from models import DoseStatus
from tools.reminder_grouper import (
    DateBucket,
    ReminderGroup,
    ReminderRecord,
    build_date_buckets,
)
from tools.dose_status import (
    DoseStatusMachine,
    MutationResult,
    TransitionInFlight,
    TransitionOutcome,
    dose_status_machine,
)


logger = logging.getLogger(__name__)


class ReminderSource(Protocol):
    """Read and mutate collaborators for a timeline's reminders"""

    async def read_reminders(self, timeline_id: int) -> Mapping[str, List[ReminderRecord]]:
        ...

    async def mutate_dose_status(
        self,
        reminder_id: int,
        new_status: DoseStatus,
        medication_time: str
    ) -> MutationResult:
        ...


class ReminderNotFound(LookupError):
    """The reminder is not part of the currently loaded schedule"""

    def __init__(self, reminder_id: int):
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} not found")


@dataclass
class ReminderLocation:
    """Where a reminder sits inside the loaded buckets"""
    bucket_index: int
    bucket: DateBucket
    group: ReminderGroup
    reminder: ReminderRecord


@dataclass
class DoseUpdate:
    """A successful status change together with its time slot"""
    outcome: TransitionOutcome
    group: ReminderGroup
    date: str


class ScheduleView:
    """
    Live schedule of one treatment timeline.

    Every refresh regroups the source data and replaces the buckets
    wholesale. Dose updates are applied only after the mutation
    collaborator succeeds, and only one update per reminder may be in
    flight at a time.
    """

    def __init__(
        self,
        source: ReminderSource,
        timeline_id: int,
        machine: Optional[DoseStatusMachine] = None,
        poll_interval: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.source = source
        self.timeline_id = timeline_id
        self.machine = machine or dose_status_machine
        self.poll_interval = poll_interval or get_settings().POLL_INTERVAL_SECONDS
        self.clock = clock

        self.buckets: List[DateBucket] = []
        self.active_date_index: int = 0
        self.last_refreshed: Optional[datetime] = None
        self.last_error: Optional[str] = None

        self._in_flight: Set[int] = set()
        self._poll_task: Optional[asyncio.Task] = None
        self._closed = False

    # ==================== READ SIDE ====================

    @property
    def dates(self) -> List[str]:
        return [bucket.date for bucket in self.buckets]

    @property
    def active_bucket(self) -> Optional[DateBucket]:
        if 0 <= self.active_date_index < len(self.buckets):
            return self.buckets[self.active_date_index]
        return None

    @staticmethod
    def is_current_day(bucket_index: int) -> bool:
        """The source lists today's date first"""
        return bucket_index == 0

    @property
    def is_active_date(self) -> bool:
        return self.is_current_day(self.active_date_index)

    async def refresh(self) -> List[DateBucket]:
        """
        Reload reminders and rebuild every date bucket.

        Raises whatever the source raises; a refresh that completes
        after stop() leaves the view untouched.
        """
        reminders = await self.source.read_reminders(self.timeline_id)

        if self._closed:
            logger.debug(f"Discarding refresh for closed timeline {self.timeline_id}")
            return self.buckets

        self.buckets = build_date_buckets(reminders)
        if self.active_date_index >= len(self.buckets):
            self.active_date_index = 0

        self.last_refreshed = self.clock()
        self.last_error = None
        logger.debug(
            f"Timeline {self.timeline_id} refreshed: {len(self.buckets)} dates"
        )
        return self.buckets

    def bucket_at(self, index: int) -> DateBucket:
        """Bucket at index; the active date is left as it is"""
        if not 0 <= index < len(self.buckets):
            raise IndexError(f"Date index {index} out of range (0-{len(self.buckets) - 1})")
        return self.buckets[index]

    def select_date(self, index: int) -> DateBucket:
        """Make the date at index the active tab"""
        bucket = self.bucket_at(index)
        self.active_date_index = index
        return bucket

    def current_groups(self) -> List[ReminderGroup]:
        """Time slots of the active date, ordered by dosage time"""
        bucket = self.active_bucket
        return bucket.sorted_groups() if bucket else []

    def locate(self, reminder_id: int) -> ReminderLocation:
        for index, bucket in enumerate(self.buckets):
            for group in bucket.groups:
                reminder = group.find(reminder_id)
                if reminder:
                    return ReminderLocation(index, bucket, group, reminder)
        raise ReminderNotFound(reminder_id)

    def is_updating(self, reminder_id: int) -> bool:
        return reminder_id in self._in_flight

    @property
    def has_in_flight(self) -> bool:
        return bool(self._in_flight)

    def can_update(self, reminder_id: int, now: Optional[datetime] = None) -> bool:
        """Whether the status control for this reminder should be enabled"""
        if self.is_updating(reminder_id):
            return False
        location = self.locate(reminder_id)
        return self.machine.can_transition(
            location.reminder,
            self.is_current_day(location.bucket_index),
            now or self.clock()
        )

    # ==================== WRITE SIDE ====================

    async def set_dose_status(
        self,
        reminder_id: int,
        new_status: DoseStatus,
        now: Optional[datetime] = None
    ) -> DoseUpdate:
        """
        Record a new status for a reminder of the loaded schedule

        Raises:
            ReminderNotFound: reminder is not in the loaded buckets
            TransitionInFlight: an update for this reminder has not settled
            TransitionGuardViolation: the transition is not allowed
            MutationFailure: the mutation collaborator failed
        """
        location = self.locate(reminder_id)
        if self.is_updating(reminder_id):
            raise TransitionInFlight(reminder_id)

        self._in_flight.add(reminder_id)
        try:
            outcome = await self.machine.transition(
                location.reminder,
                new_status,
                self.source.mutate_dose_status,
                is_active_date=self.is_current_day(location.bucket_index),
                now=now or self.clock()
            )
        finally:
            self._in_flight.discard(reminder_id)

        return DoseUpdate(outcome=outcome, group=location.group, date=location.bucket.date)

    # ==================== POLLING ====================

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self):
        """Schedule the poll task on the running event loop"""
        if self.is_polling:
            return
        self._closed = False
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(
            f"Polling timeline {self.timeline_id} every {self.poll_interval}s"
        )

    async def start(self):
        """Start polling the source every poll_interval seconds"""
        self.start_polling()

    def cancel_polling(self) -> Optional[asyncio.Task]:
        """Cancel the poll task without waiting for it to finish"""
        task, self._poll_task = self._poll_task, None
        if task:
            task.cancel()
        return task

    async def stop(self):
        """Stop polling; late results are discarded"""
        self._closed = True
        task = self.cancel_polling()
        if task:
            with suppress(asyncio.CancelledError):
                await task

    async def _poll_loop(self):
        while not self._closed:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    async def poll_once(self):
        """Refresh once, keeping the previous buckets if the read fails"""
        try:
            await self.refresh()
        except Exception as e:
            self.last_error = str(e)
            logger.warning(f"Polling timeline {self.timeline_id} failed: {e}")


class ScheduleViewRegistry:
    """
    One ScheduleView per timeline, shared across requests.

    At most max_views views are kept. When a new timeline pushes the
    registry past that, the least recently used views without an
    update in flight stop polling and are dropped.
    """

    def __init__(
        self,
        source: ReminderSource,
        machine: Optional[DoseStatusMachine] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_views: Optional[int] = None,
        autostart: bool = False
    ):
        self.source = source
        self.machine = machine
        self.clock = clock
        self.max_views = max_views or get_settings().VIEW_REGISTRY_SIZE
        self.autostart = autostart
        self._views: "OrderedDict[int, ScheduleView]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, timeline_id: int) -> bool:
        return timeline_id in self._views

    def get(self, timeline_id: int) -> ScheduleView:
        """
        View for a timeline, created on first use.

        With autostart the new view starts polling, so this must be
        called from a running event loop.
        """
        view = self._views.get(timeline_id)
        if view is not None:
            self._views.move_to_end(timeline_id)
            return view

        view = ScheduleView(
            self.source,
            timeline_id,
            machine=self.machine,
            clock=self.clock
        )
        self._views[timeline_id] = view
        self._evict()

        if self.autostart:
            view.start_polling()
        return view

    def _evict(self):
        # The newest view is never a candidate
        for timeline_id in list(self._views)[:-1]:
            if len(self._views) <= self.max_views:
                return
            view = self._views[timeline_id]
            if view.has_in_flight:
                continue
            del self._views[timeline_id]
            view.cancel_polling()
            logger.debug(f"Dropped idle view for timeline {timeline_id}")

        if len(self._views) > self.max_views:
            logger.warning(
                f"{len(self._views)} schedule views held, limit is {self.max_views}"
            )

    async def close_all(self):
        for view in self._views.values():
            await view.stop()
        self._views.clear()

        close = getattr(self.source, "close", None)
        if close:
            await close()
