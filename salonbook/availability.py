# salonbook/availability.py

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlmodel import Session, col, or_, select

from salonbook.auth import get_user_with_role
from salonbook.config import settings
from salonbook.core import contains, overlaps
from salonbook.errors import BadRequestError, ConflictError, NotFoundError
from salonbook.models import Appointment, Availability, ScheduleException
from salonbook.schemas import AppointmentStatus, AvailabilityCreate, ExceptionKind, UserRole

logger = logging.getLogger(__name__)


def exceptions_for(session: Session, stylist_id: int, day: date) -> List[ScheduleException]:
    """Exceptions on `day` for this stylist plus the global ones."""
    return session.exec(
        select(ScheduleException)
        .where(ScheduleException.date == day)
        .where(
            or_(
                ScheduleException.stylist_id == stylist_id,
                col(ScheduleException.stylist_id).is_(None),
            )
        )
    ).all()


def weekly_windows(session: Session, stylist_id: int, weekday: int) -> List[Availability]:
    return session.exec(
        select(Availability)
        .where(Availability.stylist_id == stylist_id)
        .where(Availability.weekday == weekday)
    ).all()


def ensure_bookable(session: Session, stylist_id: int, day: date, start: time, end: time) -> None:
    # 1) UNAVAILABLE exceptions win: no window closes the day, a window closes its overlap
    for exc in exceptions_for(session, stylist_id, day):
        if exc.kind != ExceptionKind.unavailable.value:
            continue
        if exc.start_time is None or exc.end_time is None:
            logger.warning(f"Stylist {stylist_id} closed on {day} ({exc.reason})")
            raise ConflictError("the stylist is not available on this date")
        if overlaps(start, end, exc.start_time, exc.end_time):
            logger.warning(
                f"Stylist {stylist_id} blocked on {day} {exc.start_time}-{exc.end_time} ({exc.reason})"
            )
            raise ConflictError("the stylist is not available at this time")

    # 2) then the window must fit inside a weekly row
    weekday = day.weekday()
    windows = weekly_windows(session, stylist_id, weekday)
    if not windows:
        raise BadRequestError(
            f"the stylist has no availability configured for {calendar.day_name[weekday]}"
        )

    if not any(contains(w.start_time, w.end_time, start, end) for w in windows):
        raise BadRequestError("the appointment is outside the stylist's available hours")


def available_starts(
    session: Session,
    stylist_id: int,
    day: date,
    slot_minutes: Optional[int] = None,
) -> List[str]:
    """Start times (HH:MM) of free slots of `slot_minutes` on `day`."""
    get_user_with_role(session, stylist_id, UserRole.stylist)
    slot_minutes = slot_minutes or settings.slot_minutes
    if slot_minutes <= 0:
        raise BadRequestError("slot length must be positive")
    slot_delta = timedelta(minutes=slot_minutes)

    windows = weekly_windows(session, stylist_id, day.weekday())
    if not windows:
        return []

    blocked = []
    for exc in exceptions_for(session, stylist_id, day):
        if exc.kind != ExceptionKind.unavailable.value:
            continue
        if exc.start_time is None or exc.end_time is None:
            return []
        blocked.append((exc.start_time, exc.end_time))

    booked = session.exec(
        select(Appointment)
        .where(Appointment.stylist_id == stylist_id)
        .where(Appointment.date == day)
        .where(Appointment.status != AppointmentStatus.cancelled.value)
    ).all()
    blocked.extend((a.start_time, a.end_time) for a in booked)

    available = set()
    for w in windows:
        current = datetime.combine(day, w.start_time)
        work_end = datetime.combine(day, w.end_time)
        while current + slot_delta <= work_end:
            slot_start = current.time()
            slot_end = (current + slot_delta).time()
            if not any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in blocked):
                available.add(slot_start)
            current += slot_delta

    return [t.strftime("%H:%M") for t in sorted(available)]


def _check_window(start: time, end: time) -> None:
    if end <= start:
        raise BadRequestError("the end time must be after the start time")


def create_availability(session: Session, data: AvailabilityCreate) -> Availability:
    stylist = get_user_with_role(session, data.stylist_id, UserRole.stylist)
    _check_window(data.start_time, data.end_time)

    # one row per (stylist, weekday)
    if weekly_windows(session, stylist.id, data.weekday):
        raise BadRequestError("an availability already exists for this weekday")

    availability = Availability(
        stylist_id=stylist.id,
        weekday=data.weekday,
        start_time=data.start_time,
        end_time=data.end_time,
    )
    session.add(availability)
    session.commit()
    session.refresh(availability)
    logger.info(f"Availability {availability.id} created for stylist {stylist.id} on weekday {data.weekday}")
    return availability


def get_availability(session: Session, availability_id: int) -> Availability:
    availability = session.get(Availability, availability_id)
    if availability is None:
        raise NotFoundError(f"availability {availability_id} not found")
    return availability


def update_availability(session: Session, availability_id: int, data: AvailabilityCreate) -> Availability:
    availability = get_availability(session, availability_id)
    _check_window(data.start_time, data.end_time)

    if data.weekday != availability.weekday and weekly_windows(session, availability.stylist_id, data.weekday):
        raise BadRequestError("an availability already exists for this weekday")

    availability.weekday = data.weekday
    availability.start_time = data.start_time
    availability.end_time = data.end_time
    session.add(availability)
    session.commit()
    session.refresh(availability)
    logger.info(f"Availability {availability_id} updated")
    return availability


def delete_availability(session: Session, availability_id: int) -> None:
    availability = get_availability(session, availability_id)
    session.delete(availability)
    session.commit()
    logger.info(f"Availability {availability_id} deleted")


def provision_default_schedule(session: Session, stylist_id: int) -> List[Availability]:
    """Give a new stylist the configured weekly template; the caller commits."""
    existing = session.exec(
        select(Availability).where(Availability.stylist_id == stylist_id)
    ).first()
    if existing is not None:
        logger.debug(f"Stylist {stylist_id} already has availability, no default schedule")
        return []

    created = []
    for weekday in settings.default_schedule_weekdays:
        availability = Availability(
            stylist_id=stylist_id,
            weekday=weekday,
            start_time=settings.default_schedule_start,
            end_time=settings.default_schedule_end,
        )
        session.add(availability)
        created.append(availability)
    logger.info(f"Default schedule provisioned for stylist {stylist_id} ({len(created)} days)")
    return created
