"""User model definitions."""

from sqlalchemy import Column, Integer, String

from scheduler.database import Base


class User(Base):
    """Represents an owner who publishes availability and receives bookings."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    # Bumped by every booking; the UPDATE doubles as the per-owner booking lock.
    booking_version = Column(Integer, nullable=False, default=0, server_default="0")
