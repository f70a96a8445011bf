# salonbook/routers/services_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, select

from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import require_role
from salonbook.errors import ConflictError, NotFoundError
from salonbook.models import AppointmentServiceLink, ServiceOffering, StylistServiceLink
from salonbook.schemas import ServiceOfferingCreate, ServiceOfferingPublic

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


def _get_service(session: Session, service_id: int) -> ServiceOffering:
    service = session.get(ServiceOffering, service_id)
    if service is None:
        raise NotFoundError(f"service {service_id} not found")
    return service


@router.get("", response_model=List[ServiceOfferingPublic])
def list_services(session: Session = Depends(get_session)):
    return session.exec(select(ServiceOffering).order_by(ServiceOffering.name)).all()


@router.get("/{service_id}", response_model=ServiceOfferingPublic)
def get_service(service_id: int, session: Session = Depends(get_session)):
    return _get_service(session, service_id)


@router.post("", response_model=ServiceOfferingPublic, status_code=201)
def create_service(
    service: ServiceOfferingCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin", "stylist")
    db_service = ServiceOffering(**service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    logger.info(f"Service {db_service.id} ({db_service.name}) created")
    return db_service


@router.put("/{service_id}", response_model=ServiceOfferingPublic)
def update_service(
    service_id: int,
    service: ServiceOfferingCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin", "stylist")
    db_service = _get_service(session, service_id)
    for key, value in service.model_dump().items():
        setattr(db_service, key, value)
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.delete("/{service_id}", status_code=204)
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_service = _get_service(session, service_id)

    # appointments keep their services and price
    used = session.exec(
        select(AppointmentServiceLink).where(AppointmentServiceLink.service_id == service_id)
    ).first()
    if used is not None:
        raise ConflictError("service is used by existing appointments")

    offered = session.exec(
        select(StylistServiceLink).where(StylistServiceLink.service_id == service_id)
    ).all()
    for link in offered:
        session.delete(link)
    session.delete(db_service)
    session.commit()
    logger.info(f"Service {service_id} deleted")
    return Response(status_code=204)
