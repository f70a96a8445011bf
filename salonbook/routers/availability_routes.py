# salonbook/routers/availability_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlmodel import Session, select

from salonbook import availability
from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import require_role
from salonbook.models import Availability
from salonbook.schemas import AvailabilityCreate, AvailabilityPublic, SlotsResponse

router = APIRouter(
    tags=["availability"],
)


def _check_stylist_scope(current_user: dict, stylist_id: int):
    # stylists manage their own hours, admins anyone's
    require_role(current_user, "stylist", "admin")
    if current_user["role"] == "stylist" and current_user["id"] != stylist_id:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.get("/availabilities", response_model=List[AvailabilityPublic])
def list_availabilities(
    stylist_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    stmt = select(Availability)
    if stylist_id is not None:
        stmt = stmt.where(Availability.stylist_id == stylist_id)
    stmt = stmt.order_by(Availability.stylist_id, Availability.weekday, Availability.start_time)
    return session.exec(stmt).all()


@router.get("/availabilities/{availability_id}", response_model=AvailabilityPublic)
def get_availability(availability_id: int, session: Session = Depends(get_session)):
    return availability.get_availability(session, availability_id)


@router.post("/availabilities", response_model=AvailabilityPublic, status_code=201)
def create_availability(
    data: AvailabilityCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if data.stylist_id is None:
        data.stylist_id = current_user["id"]
    _check_stylist_scope(current_user, data.stylist_id)
    return availability.create_availability(session, data)


@router.put("/availabilities/{availability_id}", response_model=AvailabilityPublic)
def update_availability(
    availability_id: int,
    data: AvailabilityCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    existing = availability.get_availability(session, availability_id)
    _check_stylist_scope(current_user, existing.stylist_id)
    return availability.update_availability(session, availability_id, data)


@router.delete("/availabilities/{availability_id}", status_code=204)
def delete_availability(
    availability_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    existing = availability.get_availability(session, availability_id)
    _check_stylist_scope(current_user, existing.stylist_id)
    availability.delete_availability(session, availability_id)
    return Response(status_code=204)


@router.get("/stylists/{stylist_id}/slots", response_model=SlotsResponse)
def stylist_slots(
    stylist_id: int,
    date: date,
    slot_minutes: Optional[int] = Query(default=None, ge=5, le=240),
    session: Session = Depends(get_session),
):
    starts = availability.available_starts(session, stylist_id, date, slot_minutes)
    return {"stylist_id": stylist_id, "date": date, "available_starts": starts}
