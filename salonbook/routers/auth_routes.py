# salonbook/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from salonbook.db import get_session
from salonbook.models import User
from salonbook.schemas import AuthResponse, RegisterRequest, Token, UserRole
from salonbook.auth import hash_password, token_for, user_public, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # Swagger OAuth2 "password" flow uses "username" field
    email = form_data.username.strip().lower()
    password = form_data.password

    user = session.exec(
        select(User).where(User.email == email)
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.active:
        raise HTTPException(status_code=401, detail="User is inactive")

    return {"access_token": token_for(user), "token_type": "bearer"}


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    request: RegisterRequest,
    session: Session = Depends(get_session),
):
    email = request.email.strip().lower()
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # self-registration always yields a client
    db_user = User(
        name=request.name,
        email=email,
        phone=request.phone,
        password_hash=hash_password(request.password),
        role=UserRole.client.value,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info(f"Registered client {db_user.id}")

    return {
        "access_token": token_for(db_user),
        "token_type": "bearer",
        "user": user_public(db_user),
    }
