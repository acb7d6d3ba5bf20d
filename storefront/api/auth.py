# storefront/api/auth.py
# Роуты для регистрации, получения JWT токена и смены роли покупатель/продавец.
import re
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.orm import Session

from storefront.core import security
from storefront.core.config import settings
from storefront.core.identity import IdentityFeed
from storefront.models.user import User, RoleEnum
from storefront.services.cart import CartStore
from storefront.services.cart_storage import get_cart_storage

router = APIRouter()

PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    role: RoleEnum = RoleEnum.buyer

    @field_validator("full_name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if not PASSWORD_RE.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return v


class RoleRequest(BaseModel):
    role: RoleEnum


def _user_out(user: User) -> dict:
    return {"id": user.id, "email": user.email, "full_name": user.full_name, "role": user.role.value}


@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(security.get_db)):
    """Регистрация пользователя: email + password, роль buyer или seller."""
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=payload.email,
        hashed_password=security.get_password_hash(payload.password),
        full_name=payload.full_name,
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_out(user)


@router.post("/token")
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(security.get_db)):
    """
    Логин: возвращает access_token (JWT).
    OAuth2PasswordRequestForm ожидает username и password — используем email как username.
    """
    user = db.query(User).filter(User.email == form_data.username).first()
    if not user or not user.hashed_password or not security.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect credentials")
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(subject=str(user.id), expires_delta=access_token_expires)
    return {"access_token": token, "token_type": "bearer", "role": user.role.value}


@router.get("/me")
def me(current_user: User = Depends(security.get_current_user)):
    return _user_out(current_user)


@router.put("/role")
def switch_role(
    payload: RoleRequest,
    current_user: User = Depends(security.get_current_user),
    db: Session = Depends(security.get_db),
):
    """Смена роли. Уход из buyer очищает корзину пользователя."""
    feed = IdentityFeed(security.identity_of(current_user))
    cart = CartStore(get_cart_storage())
    cart.attach(feed)

    user = db.query(User).filter(User.id == current_user.id).first()
    user.role = payload.role
    db.commit()
    db.refresh(user)

    feed.publish(security.identity_of(user))
    cart.detach()
    return _user_out(user)
