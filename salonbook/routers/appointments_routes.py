# salonbook/routers/appointments_routes.py

from datetime import date
from typing import Optional, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from sqlmodel import Session

from salonbook import booking
from salonbook.auth import get_current_user, token_for, user_public
from salonbook.db import get_session
from salonbook.deps import require_role
from salonbook.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentUpdate,
    PublicAppointmentCreate,
    PublicAppointmentResponse,
)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


def _check_owner(current_user: dict, client_id: int):
    # admins act on any appointment, clients only on their own
    if current_user["role"] != "admin" and current_user["id"] != client_id:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client", "admin")
    if current_user["role"] == "client":
        if appt.client_id is not None and appt.client_id != current_user["id"]:
            raise HTTPException(status_code=403, detail="Clients can only book for themselves")
        appt.client_id = current_user["id"]

    db_appt = booking.create_appointment(session, appt, dispatch=background_tasks.add_task)
    return booking.appointment_details(session, db_appt)


@router.post("/public", response_model=PublicAppointmentResponse, status_code=201)
def create_public_appointment(
    appt: PublicAppointmentCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
):
    db_appt, client, new_login = booking.create_public_appointment(
        session, appt, dispatch=background_tasks.add_task
    )
    response = {"appointment": booking.appointment_details(session, db_appt), "auth": None}

    # a freshly created account with a password gets logged in straight away
    if new_login:
        response["auth"] = {
            "access_token": token_for(client),
            "token_type": "bearer",
            "user": user_public(client),
        }
    return response


@router.get("", response_model=List[AppointmentPublic])
def list_appointments(
    client_id: Optional[int] = None,
    stylist_id: Optional[int] = None,
    on_date: Optional[date] = None,
    status: Optional[str] = None,
    client_name: Optional[str] = None,
    stylist_name: Optional[str] = None,
    service_name: Optional[str] = None,
    page: int = Query(default=0, ge=0),
    size: Optional[int] = Query(default=None, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # non-admins only ever see their own side of the ledger
    if current_user["role"] == "client":
        client_id = current_user["id"]
    elif current_user["role"] == "stylist":
        stylist_id = current_user["id"]

    appts = booking.list_appointments(
        session,
        client_id,
        stylist_id,
        on_date,
        status,
        client_name=client_name,
        stylist_name=stylist_name,
        service_name=service_name,
        offset=page * size if size else 0,
        limit=size,
    )
    return [booking.appointment_details(session, a) for a in appts]


@router.get("/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = booking.get_appointment(session, appt_id)
    if current_user["role"] != "admin" and current_user["id"] not in (target.client_id, target.stylist_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return booking.appointment_details(session, target)


@router.patch("/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = booking.get_appointment(session, appt_id)
    _check_owner(current_user, target.client_id)

    updated = booking.update_appointment(
        session,
        appt_id,
        changes.model_dump(exclude_unset=True),
        dispatch=background_tasks.add_task,
    )
    return booking.appointment_details(session, updated)


@router.delete("/{appt_id}", status_code=204)
def delete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = booking.get_appointment(session, appt_id)
    _check_owner(current_user, target.client_id)

    booking.delete_appointment(session, appt_id)
    return Response(status_code=204)
