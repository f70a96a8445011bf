# salonbook/schemas.py

import re

from pydantic import BaseModel, Field, field_validator
from enum import Enum
from datetime import datetime, date as Date, time
from decimal import Decimal
from typing import List, Optional

# 9 digits starting 6-9, optional +34 or 0034 prefix; spaces are ignored
PHONE_PATTERN = re.compile(r"^(\+34|0034)?[6-9][0-9]{8}$")


def valid_phone(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    if not PHONE_PATTERN.match(re.sub(r"\s", "", v)):
        raise ValueError("invalid phone number")
    return v.strip()


class UserRole(str, Enum):
    client = "client"
    stylist = "stylist"
    admin = "admin"


class AppointmentStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class ExceptionKind(str, Enum):
    available = "available"
    unavailable = "unavailable"


class NotificationKind(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"
    appointment_reminder = "appointment_reminder"
    appointment_cancelled = "appointment_cancelled"
    appointment_confirmed = "appointment_confirmed"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    active: bool


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=8, max_length=72)
    phone: Optional[str] = None
    role: UserRole = UserRole.client


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=8, max_length=72)
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return valid_phone(v)


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic


class RoleUpdate(BaseModel):
    role: UserRole


class ActiveUpdate(BaseModel):
    active: bool


class ServiceOfferingCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    duration_minutes: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class ServiceOfferingPublic(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration_minutes: int
    unit_price: Decimal


class StylistServicesUpdate(BaseModel):
    service_ids: List[int]


class AvailabilityCreate(BaseModel):
    stylist_id: Optional[int] = None  # stylists may omit it for themselves
    weekday: int = Field(ge=0, le=6)  # 0=Mon, 1=Tues....
    start_time: time
    end_time: time


class AvailabilityPublic(BaseModel):
    id: int
    stylist_id: int
    weekday: int
    start_time: time
    end_time: time


class ScheduleExceptionCreate(BaseModel):
    stylist_id: Optional[int] = None
    date: Date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    kind: ExceptionKind
    reason: Optional[str] = None


class ScheduleExceptionPublic(BaseModel):
    id: int
    stylist_id: Optional[int] = None
    date: Date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    kind: ExceptionKind
    reason: Optional[str] = None
    administrator_id: int


class AppointmentCreate(BaseModel):
    client_id: Optional[int] = None  # filled from the token for clients
    stylist_id: int
    date: Date
    start_time: time
    end_time: time
    client_phone: Optional[str] = None
    total_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    service_ids: Optional[List[int]] = None

    @field_validator("client_phone")
    @classmethod
    def check_phone(cls, v):
        return valid_phone(v)


class PublicAppointmentCreate(BaseModel):
    client_name: str = Field(min_length=1)
    client_email: str
    client_phone: Optional[str] = None
    client_password: Optional[str] = Field(default=None, max_length=72)
    stylist_id: int
    date: Date
    start_time: time
    end_time: time
    total_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    service_ids: Optional[List[int]] = None

    @field_validator("client_phone")
    @classmethod
    def check_phone(cls, v):
        return valid_phone(v)


class AppointmentUpdate(BaseModel):
    # status stays a plain string so unknown values surface as a booking error
    status: Optional[str] = None
    date: Optional[Date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class ServiceSummary(BaseModel):
    id: int
    name: str
    unit_price: Decimal


class AppointmentPublic(BaseModel):
    id: int
    client_id: int
    client_name: str
    stylist_id: int
    stylist_name: str
    date: Date
    start_time: time
    end_time: time
    status: AppointmentStatus
    client_phone: Optional[str] = None
    total_price: Decimal
    services: List[ServiceSummary] = []
    created_at: datetime
    updated_at: datetime


class PublicAppointmentResponse(BaseModel):
    appointment: AppointmentPublic
    auth: Optional[AuthResponse] = None


class SlotsResponse(BaseModel):
    stylist_id: int
    date: Date
    available_starts: List[str]


class NotificationPublic(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    kind: NotificationKind
    read: bool
    related_appointment_id: Optional[int] = None
    created_at: datetime


class UnreadCount(BaseModel):
    count: int
