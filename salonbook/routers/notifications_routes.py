# salonbook/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from salonbook import notifications
from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.schemas import NotificationPublic, UnreadCount

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("", response_model=List[NotificationPublic])
def my_notifications(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return notifications.list_for_user(session, current_user["id"])


@router.get("/unread", response_model=List[NotificationPublic])
def my_unread_notifications(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return notifications.list_for_user(session, current_user["id"], unread_only=True)


@router.get("/unread/count", response_model=UnreadCount)
def my_unread_count(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return {"count": notifications.unread_count(session, current_user["id"])}


@router.patch("/read-all", response_model=UnreadCount)
def mark_all_read(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    notifications.mark_all_read(session, current_user["id"])
    return {"count": 0}


@router.patch("/{notification_id}/read", response_model=NotificationPublic)
def mark_read(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return notifications.mark_read(session, notification_id, current_user["id"])


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    notifications.delete_notification(session, notification_id, current_user["id"])
    return Response(status_code=204)
