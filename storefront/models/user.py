# storefront/models/user.py
# Модель пользователя: email, hashed_password, role (buyer | seller), blacklisted.
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from datetime import datetime
from storefront.db.base import Base
import enum

class RoleEnum(str, enum.Enum):
    buyer = "buyer"
    seller = "seller"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    role = Column(Enum(RoleEnum), default=RoleEnum.buyer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    blacklisted = Column(Boolean, default=False)
