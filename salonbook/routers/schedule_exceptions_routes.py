# salonbook/routers/schedule_exceptions_routes.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, select

from salonbook.auth import get_current_user, get_user_with_role
from salonbook.db import get_session
from salonbook.deps import require_role
from salonbook.errors import BadRequestError, NotFoundError
from salonbook.models import ScheduleException
from salonbook.schemas import ScheduleExceptionCreate, ScheduleExceptionPublic, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/schedule-exceptions",
    tags=["schedule exceptions"],
)


def _get_exception(session: Session, exception_id: int) -> ScheduleException:
    exc = session.get(ScheduleException, exception_id)
    if exc is None:
        raise NotFoundError(f"schedule exception {exception_id} not found")
    return exc


def _validate(session: Session, data: ScheduleExceptionCreate):
    if data.stylist_id is not None:
        get_user_with_role(session, data.stylist_id, UserRole.stylist)
    # a window is either complete or absent (whole day)
    if (data.start_time is None) != (data.end_time is None):
        raise BadRequestError("start and end time must be given together")
    if data.start_time is not None and data.end_time <= data.start_time:
        raise BadRequestError("the end time must be after the start time")


@router.get("", response_model=List[ScheduleExceptionPublic])
def list_exceptions(
    stylist_id: Optional[int] = None,
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
):
    stmt = select(ScheduleException)
    if stylist_id is not None:
        stmt = stmt.where(ScheduleException.stylist_id == stylist_id)
    if on_date is not None:
        stmt = stmt.where(ScheduleException.date == on_date)
    stmt = stmt.order_by(ScheduleException.date, ScheduleException.id)
    return session.exec(stmt).all()


@router.get("/{exception_id}", response_model=ScheduleExceptionPublic)
def get_exception(exception_id: int, session: Session = Depends(get_session)):
    return _get_exception(session, exception_id)


@router.post("", response_model=ScheduleExceptionPublic, status_code=201)
def create_exception(
    data: ScheduleExceptionCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    _validate(session, data)

    db_exc = ScheduleException(
        stylist_id=data.stylist_id,
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        kind=data.kind.value,
        reason=data.reason,
        administrator_id=current_user["id"],
    )
    session.add(db_exc)
    session.commit()
    session.refresh(db_exc)
    logger.info(f"Schedule exception {db_exc.id} ({db_exc.kind}) created for {db_exc.date}")
    return db_exc


@router.put("/{exception_id}", response_model=ScheduleExceptionPublic)
def update_exception(
    exception_id: int,
    data: ScheduleExceptionCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_exc = _get_exception(session, exception_id)
    _validate(session, data)

    db_exc.stylist_id = data.stylist_id
    db_exc.date = data.date
    db_exc.start_time = data.start_time
    db_exc.end_time = data.end_time
    db_exc.kind = data.kind.value
    db_exc.reason = data.reason
    session.add(db_exc)
    session.commit()
    session.refresh(db_exc)
    return db_exc


@router.delete("/{exception_id}", status_code=204)
def delete_exception(
    exception_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_exc = _get_exception(session, exception_id)
    session.delete(db_exc)
    session.commit()
    logger.info(f"Schedule exception {exception_id} deleted")
    return Response(status_code=204)
