# salonbook/notifications.py

import logging
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from salonbook import db
from salonbook.errors import NotFoundError
from salonbook.models import Appointment, AppointmentServiceLink, Notification, ServiceOffering, User
from salonbook.schemas import NotificationKind

logger = logging.getLogger(__name__)


def notify(
    session: Session,
    user_id: int,
    title: str,
    message: str,
    kind: NotificationKind,
    related_appointment_id: Optional[int] = None,
    created_at: Optional[datetime] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        kind=kind.value,
        related_appointment_id=related_appointment_id,
        created_at=created_at or datetime.now(),
    )
    session.add(notification)
    return notification


def _fmt_day(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def _fmt_time(t: time) -> str:
    return t.strftime("%H:%M")


def _service_names(session: Session, appointment_id: int) -> str:
    names = session.exec(
        select(ServiceOffering.name)
        .join(AppointmentServiceLink, AppointmentServiceLink.service_id == ServiceOffering.id)
        .where(AppointmentServiceLink.appointment_id == appointment_id)
    ).all()
    return ", ".join(names) if names else "N/A"


def _load(session: Session, appointment_id: int):
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError(f"appointment {appointment_id} not found")
    return appointment, session.get(User, appointment.client_id), session.get(User, appointment.stylist_id)


def send_appointment_confirmed(appointment_id: int) -> None:
    try:
        with db.new_session() as session:
            appointment, client, stylist = _load(session, appointment_id)
            when = f"{_fmt_day(appointment.date)} at {_fmt_time(appointment.start_time)}"
            notify(
                session, client.id, "Appointment confirmed",
                f"Your appointment with {stylist.name} is confirmed for {when}",
                NotificationKind.appointment_confirmed, appointment.id,
            )
            notify(
                session, stylist.id, "New appointment",
                f"You have a new appointment with {client.name} on {when}",
                NotificationKind.appointment_confirmed, appointment.id,
            )
            session.commit()
            logger.info(f"Confirmation notifications sent for appointment {appointment_id}")
    except Exception as e:
        logger.exception(f"Failed to send confirmation notifications for appointment {appointment_id}: {e}")


def send_appointment_cancelled(appointment_id: int) -> None:
    try:
        with db.new_session() as session:
            appointment, client, stylist = _load(session, appointment_id)
            when = f"{_fmt_day(appointment.date)} at {_fmt_time(appointment.start_time)}"
            notify(
                session, client.id, "Appointment cancelled",
                f"Your appointment with {stylist.name} on {when} has been cancelled",
                NotificationKind.appointment_cancelled, appointment.id,
            )
            notify(
                session, stylist.id, "Appointment cancelled",
                f"The appointment with {client.name} on {when} has been cancelled",
                NotificationKind.appointment_cancelled, appointment.id,
            )
            session.commit()
            logger.info(f"Cancellation notifications sent for appointment {appointment_id}")
    except Exception as e:
        logger.exception(f"Failed to send cancellation notifications for appointment {appointment_id}: {e}")


def add_appointment_reminders(session: Session, appointment: Appointment, now: Optional[datetime] = None) -> None:
    # rows are stamped with `now` so the same-day lookup below finds them
    client = session.get(User, appointment.client_id)
    stylist = session.get(User, appointment.stylist_id)
    services = _service_names(session, appointment.id)
    when = f"tomorrow ({_fmt_day(appointment.date)}) at {_fmt_time(appointment.start_time)}"
    notify(
        session, client.id, "Appointment tomorrow",
        f"Reminder: you have an appointment {when} with {stylist.name}. Services: {services}",
        NotificationKind.appointment_reminder, appointment.id, now,
    )
    notify(
        session, stylist.id, "Appointment tomorrow",
        f"Reminder: you have an appointment {when} with {client.name}. Services: {services}",
        NotificationKind.appointment_reminder, appointment.id, now,
    )


def has_reminder_today(session: Session, appointment_id: int, today: date) -> bool:
    start_of_day = datetime.combine(today, time.min)
    end_of_day = datetime.combine(today, time.max)
    found = session.exec(
        select(Notification.id)
        .where(Notification.related_appointment_id == appointment_id)
        .where(Notification.kind == NotificationKind.appointment_reminder.value)
        .where(Notification.created_at >= start_of_day)
        .where(Notification.created_at <= end_of_day)
    ).first()
    return found is not None


# read side


def list_for_user(session: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(col(Notification.read).is_(False))
    stmt = stmt.order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
    return session.exec(stmt).all()


def unread_count(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id)
        .where(col(Notification.read).is_(False))
    ).one()


def _owned(session: Session, notification_id: int, user_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    # someone else's notification looks the same as a missing one
    if notification is None or notification.user_id != user_id:
        raise NotFoundError(f"notification {notification_id} not found")
    return notification


def mark_read(session: Session, notification_id: int, user_id: int) -> Notification:
    notification = _owned(session, notification_id, user_id)
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def mark_all_read(session: Session, user_id: int) -> int:
    unread = list_for_user(session, user_id, unread_only=True)
    for notification in unread:
        notification.read = True
        session.add(notification)
    session.commit()
    logger.info(f"Marked {len(unread)} notifications read for user {user_id}")
    return len(unread)


def delete_notification(session: Session, notification_id: int, user_id: int) -> None:
    notification = _owned(session, notification_id, user_id)
    session.delete(notification)
    session.commit()
