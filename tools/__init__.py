"""
Tools Package
Scheduling engine for the DoseRound system
"""

from .time_window import (
    is_window_open,
    parse_clock,
    split_windows,
    window_start
)

from .reminder_grouper import (
    ReminderRecord,
    ReminderGroup,
    DateBucket,
    group_reminders,
    sort_groups,
    build_date_buckets,
    completion_percentage,
    parse_timestamp
)

from .dose_status import (
    DoseStatusMachine,
    TransitionGuardViolation,
    TransitionInFlight,
    MutationFailure,
    GivenTimeEchoed,
    GivenTimeAbsent,
    MutationResult,
    TransitionOutcome,
    resolve_given_time,
    dose_status_machine
)


__all__ = [
    # Time windows
    "is_window_open",
    "parse_clock",
    "split_windows",
    "window_start",
    # Grouping
    "ReminderRecord",
    "ReminderGroup",
    "DateBucket",
    "group_reminders",
    "sort_groups",
    "build_date_buckets",
    "completion_percentage",
    "parse_timestamp",
    # Dose status
    "DoseStatusMachine",
    "TransitionGuardViolation",
    "TransitionInFlight",
    "MutationFailure",
    "GivenTimeEchoed",
    "GivenTimeAbsent",
    "MutationResult",
    "TransitionOutcome",
    "resolve_given_time",
    "dose_status_machine",
]
