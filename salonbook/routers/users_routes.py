# salonbook/routers/users_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salonbook.availability import provision_default_schedule
from salonbook.db import get_session
from salonbook.errors import NotFoundError
from salonbook.models import User
from salonbook.schemas import ActiveUpdate, RoleUpdate, UserCreate, UserPublic, UserRole
from salonbook.auth import get_current_user, hash_password, user_public
from salonbook.deps import require_role

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


def _get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"user {user_id} not found")
    return user


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    # 1) Check if email already exists
    email = user.email.strip().lower()
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Create user in DB
    db_user = User(
        name=user.name,
        email=email,
        phone=user.phone,
        password_hash=hash_password(user.password),
        role=user.role.value,
    )
    session.add(db_user)
    session.flush()
    if user.role == UserRole.stylist:
        provision_default_schedule(session, db_user.id)
    session.commit()
    session.refresh(db_user)  # fills db_user.id
    logger.info(f"User {db_user.id} created with role {db_user.role}")

    # 3) Return public user
    return user_public(db_user)


@router.get("/users", response_model=List[UserPublic])
def list_users(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    users = session.exec(select(User).order_by(User.id)).all()
    return [user_public(u) for u in users]


@router.patch("/users/{user_id}/role", response_model=UserPublic)
def change_role(
    user_id: int,
    update: RoleUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_user = _get_user(session, user_id)

    old_role = db_user.role
    db_user.role = update.role.value
    session.add(db_user)
    # becoming a stylist brings the default weekly schedule along
    if old_role != UserRole.stylist.value and update.role == UserRole.stylist:
        provision_default_schedule(session, db_user.id)
    session.commit()
    session.refresh(db_user)
    logger.info(f"User {user_id} role changed {old_role} -> {db_user.role}")
    return user_public(db_user)


@router.patch("/users/{user_id}/active", response_model=UserPublic)
def set_active(
    user_id: int,
    update: ActiveUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_user = _get_user(session, user_id)
    db_user.active = update.active
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return user_public(db_user)


@router.get("/stylists", response_model=List[UserPublic])
def list_stylists(session: Session = Depends(get_session)):
    stylists = session.exec(
        select(User)
        .where(User.role == UserRole.stylist.value)
        .where(User.active == True)  # noqa: E712
        .order_by(User.name)
    ).all()
    return [user_public(u) for u in stylists]
