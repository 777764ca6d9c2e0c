from enum import Enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from stockroom.database import Base


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    LECTURER = "LECTURER"
    STAFF = "STAFF"


class User(Base):
    """Account that borrows assets, withdraws materials and receives notifications."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    department = Column(String(255))
    role = Column(String(20), nullable=False, default=UserRole.STAFF.value, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
