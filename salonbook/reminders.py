# salonbook/reminders.py

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, col, select

from salonbook import db
from salonbook.config import settings
from salonbook.models import Appointment
from salonbook.notifications import add_appointment_reminders, has_reminder_today
from salonbook.schemas import AppointmentStatus

logger = logging.getLogger(__name__)


def send_appointment_reminders(session: Session, now: Optional[datetime] = None) -> int:
    """Remind both parties of tomorrow's confirmed appointments; returns how many were reminded."""
    now = now or datetime.now()
    today = now.date()
    tomorrow = today + timedelta(days=1)
    logger.info(f"Starting reminder sweep for {tomorrow}")

    appointment_ids = session.exec(
        select(Appointment.id)
        .where(Appointment.date == tomorrow)
        .where(Appointment.status == AppointmentStatus.confirmed.value)
        .order_by(col(Appointment.start_time))
    ).all()
    logger.info(f"Found {len(appointment_ids)} appointments for {tomorrow}")

    sent = 0
    for appointment_id in appointment_ids:
        try:
            # once per day per appointment
            if has_reminder_today(session, appointment_id, today):
                continue
            appointment = session.get(Appointment, appointment_id)
            add_appointment_reminders(session, appointment, now)
            session.commit()
            sent += 1
        except Exception as e:
            session.rollback()
            logger.exception(f"Failed to send reminder for appointment {appointment_id}: {e}")

    logger.info(f"Reminders sent: {sent}/{len(appointment_ids)}")
    return sent


def main() -> None:
    """Entry point for the daily cron job."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    db.init_db()
    with db.new_session() as session:
        send_appointment_reminders(session)


if __name__ == "__main__":
    main()
