"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class User(Base):
    """Represents a back-office user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    phone = Column(String)
    hashed_password = Column(String)
    role = Column(String)  # admin/mechanic/driver
    approval_status = Column(String, default='approved')
    last_seen_at = Column(DateTime(timezone=True))
