# salonbook/routers/stylist_services_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, col, select

from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import require_role
from salonbook.errors import BadRequestError, NotFoundError
from salonbook.models import ServiceOffering, StylistServiceLink, User
from salonbook.schemas import ServiceOfferingPublic, StylistServicesUpdate, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/stylists",
    tags=["stylist services"],
)


def _get_stylist(session: Session, stylist_id: int) -> User:
    stylist = session.get(User, stylist_id)
    if stylist is None:
        raise NotFoundError(f"stylist with id {stylist_id} not found")
    if stylist.role != UserRole.stylist.value:
        raise BadRequestError(f"user {stylist_id} is not a stylist")
    return stylist


def services_of(session: Session, stylist_id: int) -> List[ServiceOffering]:
    return session.exec(
        select(ServiceOffering)
        .join(StylistServiceLink, StylistServiceLink.service_id == ServiceOffering.id)
        .where(StylistServiceLink.stylist_id == stylist_id)
        .order_by(ServiceOffering.name)
    ).all()


# declared before /{stylist_id}/services so "me" is not parsed as an id
@router.get("/me/services", response_model=List[ServiceOfferingPublic])
def my_services(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "stylist")
    return services_of(session, current_user["id"])


@router.get("/{stylist_id}/services", response_model=List[ServiceOfferingPublic])
def stylist_services(stylist_id: int, session: Session = Depends(get_session)):
    _get_stylist(session, stylist_id)
    return services_of(session, stylist_id)


@router.post("/{stylist_id}/services", response_model=List[ServiceOfferingPublic])
def set_stylist_services(
    stylist_id: int,
    data: StylistServicesUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "stylist", "admin")
    if current_user["role"] == "stylist" and current_user["id"] != stylist_id:
        raise HTTPException(status_code=403, detail="Stylists can only change their own services")

    stylist = _get_stylist(session, stylist_id)

    # 1) every id must exist
    wanted = list(dict.fromkeys(data.service_ids))
    if not wanted:
        raise BadRequestError("at least one service id is required")
    found = set(session.exec(
        select(ServiceOffering.id).where(col(ServiceOffering.id).in_(wanted))
    ).all())
    missing = [i for i in wanted if i not in found]
    if missing:
        raise BadRequestError(f"services not found: {missing}")

    # 2) replace the whole list
    current = session.exec(
        select(StylistServiceLink).where(StylistServiceLink.stylist_id == stylist.id)
    ).all()
    for link in current:
        session.delete(link)
    session.flush()
    for service_id in wanted:
        session.add(StylistServiceLink(stylist_id=stylist.id, service_id=service_id))
    session.commit()
    logger.info(f"Stylist {stylist.id} now offers services {wanted}")

    return services_of(session, stylist.id)
