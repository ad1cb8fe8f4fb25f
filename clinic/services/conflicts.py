"""Double-booking detection for practitioner appointments.

The check is read-then-decide: one repository query followed by an
in-memory scan. No lock is held between the check and the caller's write,
so two concurrent bookings for the same slot can both pass. That race is
accepted; closing it would need an exclusion constraint in the store.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import (
    INACTIVE_STATUSES,
    Appointment,
    minutes_since_midnight,
    parse_clock_time,
)
from clinic.repos.memory import AppointmentRepository

logger = logging.getLogger(__name__)


def overlaps(new_start: int, new_end: int, existing_start: int, existing_end: int) -> bool:
    """Half-open overlap test on minutes since midnight.

    A conflict is any of: the new start lands inside the existing slot, the
    new end lands inside it, or the new slot swallows it whole. Touching
    boundaries (end == start) do not conflict.
    """
    return (
        existing_start <= new_start < existing_end
        or existing_start < new_end <= existing_end
        or (new_start <= existing_start and new_end >= existing_end)
    )


def to_interval(start_time: time | str, end_time: time | str) -> tuple[int, int]:
    """Convert clock values to a ``(start, end)`` minute pair, rejecting empty or reversed spans."""
    try:
        start = minutes_since_midnight(parse_clock_time(start_time))
        end = minutes_since_midnight(parse_clock_time(end_time))
    except ValueError as exc:
        raise ClinicError(ErrorKind.INVALID_INTERVAL, str(exc)) from exc
    if start >= end:
        raise ClinicError(
            ErrorKind.INVALID_INTERVAL,
            f"start_time {start_time} must be before end_time {end_time}",
        )
    return start, end


class ConflictDetector:
    """Checks a proposed slot against a practitioner's bookings for the day."""

    def __init__(self, appointment_repo: AppointmentRepository) -> None:
        self.appointment_repo = appointment_repo

    def find_conflicts(
        self,
        practitioner: str,
        day: date | datetime,
        start_time: time | str,
        end_time: time | str,
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        """Return every slot-holding appointment the proposed interval overlaps."""
        new_start, new_end = to_interval(start_time, end_time)
        if isinstance(day, datetime):
            day = day.date()

        candidates = self.appointment_repo.list_for_practitioner_on(
            practitioner,
            day,
            exclude_statuses=INACTIVE_STATUSES,
            exclude_id=exclude_id,
        )
        return [
            appt
            for appt in candidates
            if overlaps(
                new_start,
                new_end,
                minutes_since_midnight(appt.start_time),
                minutes_since_midnight(appt.end_time),
            )
        ]

    def has_conflict(
        self,
        practitioner: str,
        day: date | datetime,
        start_time: time | str,
        end_time: time | str,
        exclude_id: str | None = None,
    ) -> bool:
        conflicts = self.find_conflicts(practitioner, day, start_time, end_time, exclude_id)
        if conflicts:
            logger.debug(
                "Slot %s-%s on %s for %s overlaps %s",
                start_time,
                end_time,
                day,
                practitioner,
                [c.id for c in conflicts],
            )
        return bool(conflicts)
