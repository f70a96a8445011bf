# salonbook/booking.py

import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from salonbook import notifications
from salonbook.auth import find_or_create_client, get_user_with_role
from salonbook.availability import ensure_bookable
from salonbook.core import can_transition, is_in_past, total_price
from salonbook.errors import BadRequestError, ConflictError, NotFoundError
from salonbook.models import Appointment, AppointmentServiceLink, ServiceOffering, StylistDayLock, User
from salonbook.schemas import AppointmentCreate, AppointmentStatus, PublicAppointmentCreate, UserRole

logger = logging.getLogger(__name__)

Dispatch = Callable[..., Any]

UPDATABLE_FIELDS = ("status", "date", "start_time", "end_time")


def run_inline(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


def lock_stylist_day(session: Session, stylist_id: int, day: date) -> None:
    # row lock on the (stylist, day); a racing first insert fails the unique key
    lock = session.get(StylistDayLock, (stylist_id, day), with_for_update=True)
    try:
        if lock is None:
            lock = StylistDayLock(stylist_id=stylist_id, date=day)
        lock.version += 1
        session.add(lock)
        session.flush()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Concurrent booking detected for stylist {stylist_id} on {day}")
        raise ConflictError("another booking for this stylist and day is in progress, please retry")


def find_overlapping(
    session: Session,
    stylist_id: int,
    day: date,
    start: time,
    end: time,
    exclude_id: Optional[int] = None,
) -> List[Appointment]:
    stmt = (
        select(Appointment)
        .where(Appointment.stylist_id == stylist_id)
        .where(Appointment.date == day)
        .where(Appointment.status != AppointmentStatus.cancelled.value)
        .where(Appointment.start_time < end)
        .where(Appointment.end_time > start)
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return session.exec(stmt).all()


def ensure_no_overlap(
    session: Session,
    stylist_id: int,
    day: date,
    start: time,
    end: time,
    exclude_id: Optional[int] = None,
) -> None:
    overlapping = find_overlapping(session, stylist_id, day, start, end, exclude_id)
    if overlapping:
        logger.warning(
            f"{len(overlapping)} overlapping appointment(s) for stylist {stylist_id} on {day} {start}-{end}"
        )
        raise ConflictError("this slot is already booked for the stylist")


def resolve_services(session: Session, service_ids: List[int]) -> List[ServiceOffering]:
    wanted = list(dict.fromkeys(service_ids))
    services = session.exec(
        select(ServiceOffering).where(col(ServiceOffering.id).in_(wanted))
    ).all()
    if len(services) != len(wanted):
        found = {s.id for s in services}
        missing = [i for i in wanted if i not in found]
        raise NotFoundError(f"services not found: {missing}")
    return services


def _check_order(start: time, end: time) -> None:
    if end <= start:
        raise BadRequestError("the end time must be after the start time")


def create_appointment(
    session: Session,
    data: AppointmentCreate,
    *,
    now: Optional[datetime] = None,
    dispatch: Dispatch = run_inline,
) -> Appointment:
    now = now or datetime.now()
    logger.info(f"Creating appointment for client {data.client_id} with stylist {data.stylist_id}")

    # 1) time ordering, before touching any store
    _check_order(data.start_time, data.end_time)

    # 2) identities
    if data.client_id is None:
        raise BadRequestError("client_id is required")
    client = get_user_with_role(session, data.client_id, UserRole.client)
    stylist = get_user_with_role(session, data.stylist_id, UserRole.stylist)

    # 3) not in the past
    if is_in_past(data.date, data.start_time, now):
        logger.warning(f"Attempt to book in the past: {data.date} {data.start_time}")
        raise BadRequestError("appointments cannot be booked in the past")

    # 4) exceptions, then weekly hours
    ensure_bookable(session, stylist.id, data.date, data.start_time, data.end_time)

    # 5) no double booking
    lock_stylist_day(session, stylist.id, data.date)
    ensure_no_overlap(session, stylist.id, data.date, data.start_time, data.end_time)

    # 6) services and price
    services: List[ServiceOffering] = []
    if data.service_ids:
        services = resolve_services(session, data.service_ids)
        price = total_price(s.unit_price for s in services)
    elif data.total_price is not None:
        price = total_price([data.total_price])
    else:
        raise BadRequestError("a total price or a list of services is required")

    # 7) persist
    appointment = Appointment(
        client_id=client.id,
        stylist_id=stylist.id,
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        status=AppointmentStatus.confirmed.value,
        client_phone=data.client_phone,
        total_price=price,
        created_at=now,
        updated_at=now,
    )
    session.add(appointment)
    try:
        session.flush()
        for service in services:
            session.add(AppointmentServiceLink(appointment_id=appointment.id, service_id=service.id))
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("this slot is already booked for the stylist")

    session.refresh(appointment)
    logger.info(f"Appointment {appointment.id} created ({price} for {len(services)} services)")

    # 8) best-effort notifications
    dispatch(notifications.send_appointment_confirmed, appointment.id)
    return appointment


def create_public_appointment(
    session: Session,
    data: PublicAppointmentCreate,
    *,
    now: Optional[datetime] = None,
    dispatch: Dispatch = run_inline,
) -> Tuple[Appointment, User, bool]:
    # the client row is only flushed, so a rejected booking rolls it back too
    client, created = find_or_create_client(
        session,
        data.client_name,
        data.client_email,
        data.client_phone,
        data.client_password,
    )
    request = AppointmentCreate(
        client_id=client.id,
        stylist_id=data.stylist_id,
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        client_phone=data.client_phone,
        total_price=data.total_price,
        service_ids=data.service_ids,
    )
    appointment = create_appointment(session, request, now=now, dispatch=dispatch)
    session.refresh(client)
    return appointment, client, created and client.password_hash is not None


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise BadRequestError(f"invalid date: {value}")


def _as_time(value) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise BadRequestError(f"invalid time: {value}")


def _as_status(value) -> AppointmentStatus:
    try:
        return AppointmentStatus(str(value).lower())
    except ValueError:
        raise BadRequestError(f"unsupported status value: {value}")


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError(f"appointment {appointment_id} not found")
    return appointment


def update_appointment(
    session: Session,
    appointment_id: int,
    changes: Dict[str, Any],
    *,
    now: Optional[datetime] = None,
    dispatch: Dispatch = run_inline,
) -> Appointment:
    """Apply a sparse change of status, date, start_time and end_time."""
    now = now or datetime.now()
    logger.info(f"Updating appointment {appointment_id} with {sorted(changes)}")

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise BadRequestError(f"unsupported fields: {sorted(unknown)}")

    appointment = get_appointment(session, appointment_id)
    old_status = AppointmentStatus(appointment.status)

    new_status = old_status
    if changes.get("status") is not None:
        new_status = _as_status(changes["status"])
        if not can_transition(old_status, new_status):
            raise ConflictError(f"cannot change status from {old_status.value} to {new_status.value}")

    new_date = _as_date(changes["date"]) if changes.get("date") is not None else appointment.date
    new_start = _as_time(changes["start_time"]) if changes.get("start_time") is not None else appointment.start_time
    new_end = _as_time(changes["end_time"]) if changes.get("end_time") is not None else appointment.end_time

    _check_order(new_start, new_end)

    rescheduled = (
        new_date != appointment.date
        or new_start != appointment.start_time
        or new_end != appointment.end_time
    )
    if rescheduled:
        if old_status != AppointmentStatus.confirmed:
            raise ConflictError(f"a {old_status.value} appointment cannot be rescheduled")
        if is_in_past(new_date, new_start, now):
            raise BadRequestError("appointments cannot be moved into the past")
        ensure_bookable(session, appointment.stylist_id, new_date, new_start, new_end)
        lock_stylist_day(session, appointment.stylist_id, new_date)
        ensure_no_overlap(session, appointment.stylist_id, new_date, new_start, new_end, exclude_id=appointment.id)

    appointment.status = new_status.value
    appointment.date = new_date
    appointment.start_time = new_start
    appointment.end_time = new_end
    appointment.updated_at = now
    session.add(appointment)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("this slot is already booked for the stylist")
    session.refresh(appointment)
    logger.info(f"Appointment {appointment_id} updated (status {old_status.value} -> {new_status.value})")

    if new_status == AppointmentStatus.cancelled and old_status != AppointmentStatus.cancelled:
        dispatch(notifications.send_appointment_cancelled, appointment.id)
    return appointment


def delete_appointment(session: Session, appointment_id: int) -> None:
    appointment = get_appointment(session, appointment_id)
    links = session.exec(
        select(AppointmentServiceLink).where(AppointmentServiceLink.appointment_id == appointment_id)
    ).all()
    for link in links:
        session.delete(link)
    session.delete(appointment)
    session.commit()
    logger.info(f"Appointment {appointment_id} deleted")


def services_for(session: Session, appointment_id: int) -> List[ServiceOffering]:
    return session.exec(
        select(ServiceOffering)
        .join(AppointmentServiceLink, AppointmentServiceLink.service_id == ServiceOffering.id)
        .where(AppointmentServiceLink.appointment_id == appointment_id)
        .order_by(ServiceOffering.id)
    ).all()


def _name_like(value: str) -> str:
    return f"%{value.strip()}%"


def list_appointments(
    session: Session,
    client_id: Optional[int] = None,
    stylist_id: Optional[int] = None,
    on_date: Optional[date] = None,
    status: Optional[str] = None,
    client_name: Optional[str] = None,
    stylist_name: Optional[str] = None,
    service_name: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Appointment]:
    stmt = select(Appointment)
    if client_id is not None:
        stmt = stmt.where(Appointment.client_id == client_id)
    if stylist_id is not None:
        stmt = stmt.where(Appointment.stylist_id == stylist_id)
    if on_date is not None:
        stmt = stmt.where(Appointment.date == on_date)
    if status is not None:
        stmt = stmt.where(Appointment.status == _as_status(status).value)

    # partial, case-insensitive name matches
    if client_name:
        stmt = stmt.where(col(Appointment.client_id).in_(
            select(User.id).where(col(User.name).ilike(_name_like(client_name)))
        ))
    if stylist_name:
        stmt = stmt.where(col(Appointment.stylist_id).in_(
            select(User.id).where(col(User.name).ilike(_name_like(stylist_name)))
        ))
    if service_name:
        stmt = stmt.where(col(Appointment.id).in_(
            select(AppointmentServiceLink.appointment_id)
            .join(ServiceOffering, ServiceOffering.id == AppointmentServiceLink.service_id)
            .where(col(ServiceOffering.name).ilike(_name_like(service_name)))
        ))

    stmt = stmt.order_by(
        col(Appointment.date).desc(), col(Appointment.start_time).desc(), col(Appointment.id).desc()
    )
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return session.exec(stmt).all()


def appointment_details(session: Session, appointment: Appointment) -> dict:
    client = session.get(User, appointment.client_id)
    stylist = session.get(User, appointment.stylist_id)
    return {
        "id": appointment.id,
        "client_id": appointment.client_id,
        "client_name": client.name if client else "",
        "stylist_id": appointment.stylist_id,
        "stylist_name": stylist.name if stylist else "",
        "date": appointment.date,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "status": appointment.status,
        "client_phone": appointment.client_phone,
        "total_price": appointment.total_price,
        "services": [
            {"id": s.id, "name": s.name, "unit_price": s.unit_price}
            for s in services_for(session, appointment.id)
        ],
        "created_at": appointment.created_at,
        "updated_at": appointment.updated_at,
    }
