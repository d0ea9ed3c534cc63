import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Role(str, enum.Enum):
    """Authorization level, totally ordered EMPLOYEE < MANAGER < ADMIN."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]

    def satisfies(self, minimum: "Role") -> bool:
        return self.rank >= minimum.rank


_ROLE_RANKS = {Role.EMPLOYEE: 0, Role.MANAGER: 1, Role.ADMIN: 2}


class User(Base):
    """SQLAlchemy model for application users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    position = Column(String)
    role = Column(Enum(Role, name="role"), default=Role.EMPLOYEE, nullable=False)
    manager_id = Column(Integer, ForeignKey("users.id"), index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime)
    password_reset_token = Column(String, unique=True, index=True)
    password_reset_expires = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    manager = relationship(
        "User", remote_side=[id], back_populates="direct_reports"
    )
    direct_reports = relationship("User", back_populates="manager")
    sessions = relationship(
        "UserSession", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
