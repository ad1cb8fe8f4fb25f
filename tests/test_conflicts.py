"""Tests for the double-booking detector."""

from __future__ import annotations

from datetime import date, datetime, time

import pytest

from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import Appointment, AppointmentStatus, AppointmentType
from clinic.repos.memory import AppointmentRepository
from clinic.services.conflicts import ConflictDetector, overlaps

_DAY = date(2024, 3, 1)


@pytest.fixture()
def repo() -> AppointmentRepository:
    return AppointmentRepository()


@pytest.fixture()
def detector(repo: AppointmentRepository) -> ConflictDetector:
    return ConflictDetector(repo)


def _book(
    repo: AppointmentRepository,
    start: str,
    end: str,
    *,
    practitioner: str = "Dr. A",
    day: date = _DAY,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
) -> Appointment:
    return repo.add(
        Appointment(
            patient_id="patient-1",
            practitioner=practitioner,
            date=day,
            start_time=start,
            end_time=end,
            type=AppointmentType.TREATMENT_SESSION,
            status=status,
        )
    )


def test_back_to_back_slots_do_not_conflict(repo, detector):
    _book(repo, "09:00", "10:00")

    assert detector.has_conflict("Dr. A", _DAY, "10:00", "11:00") is False
    assert detector.has_conflict("Dr. A", _DAY, "08:00", "09:00") is False


def test_containment_conflicts_in_both_directions(repo, detector):
    outer = _book(repo, "09:00", "11:00")
    assert detector.has_conflict("Dr. A", _DAY, "09:30", "10:30") is True

    repo.clear()
    _book(repo, "09:30", "10:30")
    assert detector.has_conflict("Dr. A", _DAY, outer.start_time, outer.end_time) is True


def test_identical_slot_conflicts(repo, detector):
    _book(repo, "09:00", "10:00")
    assert detector.has_conflict("Dr. A", _DAY, "09:00", "10:00") is True


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW])
def test_cancelled_and_no_show_never_conflict(repo, detector, status):
    _book(repo, "09:00", "10:00", status=status)
    assert detector.has_conflict("Dr. A", _DAY, "09:00", "10:00") is False
    assert detector.has_conflict("Dr. A", _DAY, "08:00", "12:00") is False


@pytest.mark.parametrize(
    "status",
    [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.RESCHEDULED,
    ],
)
def test_other_statuses_still_hold_the_slot(repo, detector, status):
    _book(repo, "09:00", "10:00", status=status)
    assert detector.has_conflict("Dr. A", _DAY, "09:15", "09:45") is True


def test_exclude_id_skips_the_appointment_being_edited(repo, detector):
    own = _book(repo, "09:00", "10:00")

    assert detector.has_conflict("Dr. A", _DAY, "09:30", "10:30", exclude_id=own.id) is False
    assert detector.has_conflict("Dr. A", _DAY, "09:30", "10:30") is True


def test_exclude_id_does_not_hide_other_overlaps(repo, detector):
    own = _book(repo, "09:00", "10:00")
    _book(repo, "10:00", "11:00")

    assert detector.has_conflict("Dr. A", _DAY, "09:30", "10:30", exclude_id=own.id) is True


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        ("14:30", "14:45", True),
        ("15:00", "15:30", False),
        ("13:00", "14:00", False),
        ("13:30", "14:30", True),
    ],
)
def test_single_afternoon_booking(repo, detector, start, end, expected):
    _book(repo, "14:00", "15:00")
    assert detector.has_conflict("Dr. A", date(2024, 3, 1), start, end) is expected


def test_other_practitioner_and_other_day_are_independent(repo, detector):
    _book(repo, "09:00", "10:00")

    assert detector.has_conflict("Dr. B", _DAY, "09:00", "10:00") is False
    assert detector.has_conflict("Dr. A", date(2024, 3, 2), "09:00", "10:00") is False


def test_time_of_day_on_the_date_is_ignored(repo, detector):
    _book(repo, "09:00", "10:00")
    assert detector.has_conflict("Dr. A", datetime(2024, 3, 1, 23, 59), "09:30", "09:45") is True


def test_unpadded_clock_strings_compare_numerically(repo, detector):
    # Lexically "9:30" > "10:00"; numerically it is inside the slot.
    _book(repo, "09:00", "10:00")
    assert detector.has_conflict("Dr. A", _DAY, "9:30", "9:45") is True
    assert detector.has_conflict("Dr. A", _DAY, "8:00", "9:00") is False


def test_structured_times_are_accepted(repo, detector):
    _book(repo, "09:00", "10:00")
    assert detector.has_conflict("Dr. A", _DAY, time(9, 59), time(10, 30)) is True


@pytest.mark.parametrize(("start", "end"), [("10:00", "09:00"), ("10:00", "10:00")])
def test_reversed_or_empty_interval_is_rejected(detector, start, end):
    with pytest.raises(ClinicError) as exc_info:
        detector.has_conflict("Dr. A", _DAY, start, end)
    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL


@pytest.mark.parametrize("bad", ["24:00", "9", "09:60", "nine"])
def test_malformed_clock_is_rejected(detector, bad):
    with pytest.raises(ClinicError) as exc_info:
        detector.has_conflict("Dr. A", _DAY, bad, "23:00")
    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL


def test_find_conflicts_lists_every_overlap(repo, detector):
    first = _book(repo, "09:00", "10:00")
    second = _book(repo, "10:00", "11:00")
    _book(repo, "11:00", "12:00")

    conflicts = detector.find_conflicts("Dr. A", _DAY, "09:30", "10:30")
    assert [c.id for c in conflicts] == [first.id, second.id]


def test_lookup_failure_propagates_unchanged():
    class UnavailableRepository(AppointmentRepository):
        def list_for_practitioner_on(self, *args, **kwargs):
            raise ClinicError(ErrorKind.LOOKUP_FAILURE, "appointment store unavailable")

    detector = ConflictDetector(UnavailableRepository())
    with pytest.raises(ClinicError) as exc_info:
        detector.has_conflict("Dr. A", _DAY, "09:00", "10:00")
    assert exc_info.value.kind == ErrorKind.LOOKUP_FAILURE


def test_overlaps_predicate():
    # [540, 600) is 09:00-10:00
    assert overlaps(570, 585, 540, 600)  # start inside
    assert overlaps(500, 560, 540, 600)  # end inside
    assert overlaps(500, 700, 540, 600)  # swallows existing
    assert not overlaps(600, 660, 540, 600)
    assert not overlaps(480, 540, 540, 600)
