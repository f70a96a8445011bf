# tests/test_booking.py

from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from sqlmodel import select

from salonbook import notifications
from salonbook.booking import (
    create_appointment,
    create_public_appointment,
    delete_appointment,
    services_for,
    update_appointment,
)
from salonbook.errors import BadRequestError, ConflictError, NotFoundError
from salonbook.models import Appointment, AppointmentServiceLink, Availability, Notification, User
from salonbook.schemas import AppointmentCreate, PublicAppointmentCreate


def no_dispatch(func, *args):
    pass


@pytest.fixture
def open_monday(session, stylist, make_availability, monday):
    make_availability(stylist.id, 0, time(9), time(18))
    return monday


@pytest.fixture
def cut_and_colour(make_service):
    return make_service("Cut", "25.00"), make_service("Colour", "15.00")


def booking(customer, stylist, day, start, end, **kwargs) -> AppointmentCreate:
    return AppointmentCreate(
        client_id=customer.id,
        stylist_id=stylist.id,
        date=day,
        start_time=start,
        end_time=end,
        **kwargs,
    )


def appointment_count(session) -> int:
    return len(session.exec(select(Appointment)).all())


def test_booking_with_services_is_confirmed_and_priced(session, customer, stylist, open_monday, cut_and_colour):
    cut, colour = cut_and_colour
    data = booking(customer, stylist, open_monday, time(10), time(11), service_ids=[cut.id, colour.id])

    appointment = create_appointment(session, data, dispatch=no_dispatch)

    assert appointment.id is not None
    assert appointment.status == "confirmed"
    assert appointment.total_price == Decimal("40.00")
    assert [s.name for s in services_for(session, appointment.id)] == ["Cut", "Colour"]


def test_overlapping_booking_is_refused(session, customer, stylist, open_monday):
    create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("30")),
        dispatch=no_dispatch,
    )
    with pytest.raises(ConflictError, match="already booked"):
        create_appointment(
            session, booking(customer, stylist, open_monday, time(10, 30), time(11, 30), total_price=Decimal("30")),
            dispatch=no_dispatch,
        )
    session.rollback()
    assert appointment_count(session) == 1


def test_back_to_back_bookings_are_fine(session, customer, stylist, open_monday):
    for start, end in [(time(10), time(11)), (time(11), time(12)), (time(9), time(10))]:
        create_appointment(
            session, booking(customer, stylist, open_monday, start, end, total_price=Decimal("10")),
            dispatch=no_dispatch,
        )
    assert appointment_count(session) == 3


def test_cancelled_slot_can_be_rebooked(session, customer, stylist, open_monday):
    first = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    update_appointment(session, first.id, {"status": "cancelled"}, dispatch=no_dispatch)
    second = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    assert second.status == "confirmed"


def test_full_day_exception_refuses_any_hour(session, customer, stylist, open_monday, make_exception):
    make_exception(open_monday, stylist_id=stylist.id, reason="holiday")
    for start, end in [(time(9), time(9, 30)), (time(16), time(17))]:
        with pytest.raises(ConflictError):
            create_appointment(
                session, booking(customer, stylist, open_monday, start, end, total_price=Decimal("10")),
                dispatch=no_dispatch,
            )


def test_reversed_window_is_refused_before_any_lookup(customer, stylist, monday):
    class Untouchable:
        def __getattr__(self, name):
            raise AssertionError(f"session.{name} used")

    data = booking(customer, stylist, monday, time(11), time(10), total_price=Decimal("10"))
    with pytest.raises(BadRequestError, match="end time must be after"):
        create_appointment(Untouchable(), data, dispatch=no_dispatch)


def test_unknown_service_is_not_found(session, customer, stylist, open_monday, cut_and_colour):
    cut, _ = cut_and_colour
    data = booking(customer, stylist, open_monday, time(10), time(11), service_ids=[cut.id, 9999])
    with pytest.raises(NotFoundError, match="9999"):
        create_appointment(session, data, dispatch=no_dispatch)
    session.rollback()
    assert appointment_count(session) == 0


def test_duplicate_service_ids_are_counted_once(session, customer, stylist, open_monday, cut_and_colour):
    cut, colour = cut_and_colour
    data = booking(customer, stylist, open_monday, time(10), time(11), service_ids=[cut.id, cut.id, colour.id])
    appointment = create_appointment(session, data, dispatch=no_dispatch)
    assert appointment.total_price == Decimal("40.00")
    links = session.exec(
        select(AppointmentServiceLink).where(AppointmentServiceLink.appointment_id == appointment.id)
    ).all()
    assert len(links) == 2


def test_service_prices_override_supplied_total(session, customer, stylist, open_monday, cut_and_colour):
    cut, _ = cut_and_colour
    data = booking(customer, stylist, open_monday, time(10), time(11), service_ids=[cut.id], total_price=Decimal("99"))
    appointment = create_appointment(session, data, dispatch=no_dispatch)
    assert appointment.total_price == Decimal("25.00")


def test_explicit_price_without_services(session, customer, stylist, open_monday):
    data = booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("12.5"))
    appointment = create_appointment(session, data, dispatch=no_dispatch)
    assert appointment.total_price == Decimal("12.50")


def test_price_or_services_required(session, customer, stylist, open_monday):
    with pytest.raises(BadRequestError, match="total price or a list of services"):
        create_appointment(
            session, booking(customer, stylist, open_monday, time(10), time(11)), dispatch=no_dispatch
        )


def test_booking_in_the_past_is_refused(session, customer, stylist, open_monday):
    later = datetime.combine(open_monday, time(12))
    with pytest.raises(BadRequestError, match="past"):
        create_appointment(
            session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
            now=later, dispatch=no_dispatch,
        )


def test_roles_and_active_flags_are_checked(session, customer, stylist, make_user, open_monday):
    # swapped roles
    data = booking(stylist, customer, open_monday, time(10), time(11), total_price=Decimal("10"))
    with pytest.raises(BadRequestError, match="not a client"):
        create_appointment(session, data, dispatch=no_dispatch)

    retired = make_user("stylist", "Rita Retired", "rita@salon.test", active=False)
    data = booking(customer, retired, open_monday, time(10), time(11), total_price=Decimal("10"))
    with pytest.raises(BadRequestError, match="not active"):
        create_appointment(session, data, dispatch=no_dispatch)

    data = AppointmentCreate(
        client_id=4242, stylist_id=stylist.id, date=open_monday,
        start_time=time(10), end_time=time(11), total_price=Decimal("10"),
    )
    with pytest.raises(NotFoundError, match="client"):
        create_appointment(session, data, dispatch=no_dispatch)


def test_confirmation_notifies_client_and_stylist(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10"))
    )
    session.expire_all()
    rows = session.exec(
        select(Notification).where(Notification.related_appointment_id == appointment.id)
    ).all()
    assert {r.user_id for r in rows} == {customer.id, stylist.id}
    assert {r.kind for r in rows} == {"appointment_confirmed"}


def test_failing_notification_keeps_booking(session, customer, stylist, open_monday, monkeypatch):
    def broken(*args):
        raise RuntimeError("mail server down")

    monkeypatch.setattr(notifications, "_load", broken)
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10"))
    )
    session.expire_all()
    assert session.get(Appointment, appointment.id).status == "confirmed"
    assert session.exec(select(Notification)).all() == []


def test_cancel_notifies_without_revalidating(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    # the stylist's hours disappear; a status-only change must not care
    for row in session.exec(select(Availability)).all():
        session.delete(row)
    session.commit()

    updated = update_appointment(session, appointment.id, {"status": "CANCELLED"})
    assert updated.status == "cancelled"

    session.expire_all()
    rows = session.exec(
        select(Notification).where(Notification.kind == "appointment_cancelled")
    ).all()
    assert {r.user_id for r in rows} == {customer.id, stylist.id}


def test_terminal_statuses_are_final(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    update_appointment(session, appointment.id, {"status": "completed"}, dispatch=no_dispatch)
    with pytest.raises(ConflictError):
        update_appointment(session, appointment.id, {"status": "confirmed"}, dispatch=no_dispatch)
    # staying put is a no-op
    update_appointment(session, appointment.id, {"status": "completed"}, dispatch=no_dispatch)


def test_unknown_status_and_fields(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    with pytest.raises(BadRequestError, match="unsupported status"):
        update_appointment(session, appointment.id, {"status": "pending"}, dispatch=no_dispatch)
    with pytest.raises(BadRequestError, match="unsupported fields"):
        update_appointment(session, appointment.id, {"stylist_id": 3}, dispatch=no_dispatch)


def test_reschedule_checks_overlap_but_not_itself(session, customer, stylist, open_monday):
    first = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    create_appointment(
        session, booking(customer, stylist, open_monday, time(12), time(13), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )

    moved = update_appointment(
        session, first.id, {"start_time": time(10, 30), "end_time": time(11, 30)}, dispatch=no_dispatch
    )
    assert moved.start_time == time(10, 30)

    with pytest.raises(ConflictError):
        update_appointment(session, first.id, {"end_time": "12:30"}, dispatch=no_dispatch)


def test_reschedule_checks_hours_and_order(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    with pytest.raises(BadRequestError, match="no availability"):
        update_appointment(
            session, appointment.id, {"date": open_monday + timedelta(days=5)}, dispatch=no_dispatch
        )
    with pytest.raises(BadRequestError, match="end time must be after"):
        update_appointment(session, appointment.id, {"start_time": time(11, 30)}, dispatch=no_dispatch)


def test_cancelled_appointment_cannot_move(session, customer, stylist, open_monday):
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), total_price=Decimal("10")),
        dispatch=no_dispatch,
    )
    update_appointment(session, appointment.id, {"status": "cancelled"}, dispatch=no_dispatch)
    with pytest.raises(ConflictError, match="cannot be rescheduled"):
        update_appointment(session, appointment.id, {"start_time": time(14), "end_time": time(15)})


def test_delete(session, customer, stylist, open_monday, cut_and_colour):
    cut, _ = cut_and_colour
    appointment = create_appointment(
        session, booking(customer, stylist, open_monday, time(10), time(11), service_ids=[cut.id]),
        dispatch=no_dispatch,
    )
    delete_appointment(session, appointment.id)
    assert session.get(Appointment, appointment.id) is None
    assert session.exec(select(AppointmentServiceLink)).all() == []

    with pytest.raises(NotFoundError):
        delete_appointment(session, appointment.id)


def public_booking(stylist, day, **kwargs) -> PublicAppointmentCreate:
    fields = dict(
        client_name="Nina New",
        client_email="Nina@Example.test",
        stylist_id=stylist.id,
        date=day,
        start_time=time(10),
        end_time=time(11),
        total_price=Decimal("20"),
    )
    fields.update(kwargs)
    return PublicAppointmentCreate(**fields)


def test_public_booking_creates_client(session, stylist, open_monday):
    appointment, client, new_login = create_public_appointment(
        session, public_booking(stylist, open_monday, client_password="long-enough"), dispatch=no_dispatch
    )
    assert client.email == "nina@example.test"
    assert client.role == "client"
    assert new_login is True
    assert appointment.client_id == client.id

    # second booking reuses the account
    _, again, new_login = create_public_appointment(
        session, public_booking(stylist, open_monday, start_time=time(14), end_time=time(15)),
        dispatch=no_dispatch,
    )
    assert again.id == client.id
    assert new_login is False


def test_public_booking_without_password_gets_no_login(session, stylist, open_monday):
    _, client, new_login = create_public_appointment(
        session, public_booking(stylist, open_monday), dispatch=no_dispatch
    )
    assert client.password_hash is None
    assert new_login is False


def test_rejected_public_booking_leaves_no_client(session, stylist, monday):
    # no availability configured at all
    with pytest.raises(BadRequestError):
        create_public_appointment(session, public_booking(stylist, monday), dispatch=no_dispatch)
    session.rollback()
    assert session.exec(select(User).where(User.email == "nina@example.test")).first() is None


def test_public_booking_refuses_staff_email(session, stylist, open_monday):
    with pytest.raises(ConflictError):
        create_public_appointment(
            session, public_booking(stylist, open_monday, client_email=stylist.email), dispatch=no_dispatch
        )
