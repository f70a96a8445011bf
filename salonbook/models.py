# salonbook/models.py

from typing import Optional
from datetime import datetime, date as Date, time
from decimal import Decimal

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    password_hash: Optional[str] = None  # None = no login for this account
    role: str = Field(index=True)  # client, stylist or admin
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class ServiceOffering(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    duration_minutes: int
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)


class Availability(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    stylist_id: int = Field(foreign_key="user.id", index=True)
    weekday: int  # 0=Mon ... 6=Sun
    start_time: time
    end_time: time


class ScheduleException(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    stylist_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)  # None = every stylist
    date: Date = Field(index=True)
    start_time: Optional[time] = None  # no window = whole day
    end_time: Optional[time] = None
    kind: str  # "available" or "unavailable"
    reason: Optional[str] = None
    administrator_id: int = Field(foreign_key="user.id")


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: int = Field(foreign_key="user.id", index=True)
    stylist_id: int = Field(foreign_key="user.id", index=True)
    date: Date = Field(index=True)
    start_time: time
    end_time: time
    status: str = "confirmed"
    client_phone: Optional[str] = None
    total_price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class AppointmentServiceLink(SQLModel, table=True):
    appointment_id: int = Field(foreign_key="appointment.id", primary_key=True)
    service_id: int = Field(foreign_key="serviceoffering.id", primary_key=True)


class StylistDayLock(SQLModel, table=True):
    """One row per (stylist, date); writers touch it before checking overlaps."""

    __table_args__ = (
        UniqueConstraint("stylist_id", "date", name="uq_stylist_day"),
    )

    stylist_id: int = Field(foreign_key="user.id", primary_key=True)
    date: Date = Field(primary_key=True)
    version: int = 0


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    title: str
    message: str
    kind: str
    read: bool = False
    related_appointment_id: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.now)


class StylistServiceLink(SQLModel, table=True):
    # services a stylist offers
    stylist_id: int = Field(foreign_key="user.id", primary_key=True)
    service_id: int = Field(foreign_key="serviceoffering.id", primary_key=True)
