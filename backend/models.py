import uuid

from sqlalchemy import Column, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """A manager account. Its id is the auth provider's user id."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    team_members = relationship("TeamMember", back_populates="manager", cascade="all, delete-orphan")


class TeamMember(Base):
    """
    A person delegated work by a manager.

    user_id stays NULL until the invite is accepted and the member signs up;
    role classification matches on user_id, never on the primary key.
    """

    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=_new_id)
    manager_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), index=True, nullable=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255))
    invite_token = Column(String(64), unique=True, nullable=True)
    invite_accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    manager = relationship("User", back_populates="team_members")
