# salonbook/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from .config import settings
from .db import get_session
from .errors import BadRequestError, ConflictError, NotFoundError
from .models import User
from .schemas import UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def token_for(user: User) -> str:
    return create_access_token({"sub": user.email, "uid": user.id, "role": user.role})


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def user_public(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "active": user.active,
    }


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    credentials_error = HTTPException(
        status_code=401,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        email = payload.get("sub")
        if email is None:
            raise credentials_error
    except JWTError:
        raise credentials_error

    user = session.exec(
        select(User).where(User.email == email)
    ).first()

    if user is None:
        raise HTTPException(
            status_code=401,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.active:
        raise HTTPException(status_code=401, detail="User is inactive")

    return user_public(user)


def get_user_with_role(session: Session, user_id: int, role: UserRole) -> User:
    """Load a user and check its role; used wherever an id must name a client or stylist."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"{role.value} with id {user_id} not found")
    if user.role != role.value:
        raise BadRequestError(f"user {user_id} is not a {role.value}")
    if not user.active:
        raise BadRequestError(f"{role.value} {user_id} is not active")
    return user


def find_or_create_client(
    session: Session,
    name: str,
    email: str,
    phone: Optional[str] = None,
    password: Optional[str] = None,
) -> tuple[User, bool]:
    # 1) existing account: refresh a client, refuse any other role
    email = email.strip().lower()
    user = session.exec(select(User).where(User.email == email)).first()

    if user is not None:
        if user.role != UserRole.client.value:
            raise ConflictError("this email is already registered with another account type")
        if name and name != user.name:
            user.name = name
        if phone and phone != user.phone:
            user.phone = phone
        session.add(user)
        session.flush()
        return user, False

    # 2) new client; no password means no login
    user = User(
        name=name,
        email=email,
        phone=phone,
        password_hash=hash_password(password) if password and password.strip() else None,
        role=UserRole.client.value,
        active=True,
    )
    session.add(user)
    session.flush()
    logger.info(f"Created client {user.id} from public booking (login={'yes' if user.password_hash else 'no'})")
    return user, True
