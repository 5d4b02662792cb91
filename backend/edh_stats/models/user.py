"""
User model for authentication and ownership.
"""
from sqlalchemy import Column, String, CheckConstraint
from sqlalchemy.orm import relationship
from edh_stats.db.base import BaseModel


class User(BaseModel):
    """User account. Username and email are stored lower-cased."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=False)

    # Relationships
    commanders = relationship("Commander", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    games = relationship("Game", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("length(username) >= 3", name="ck_users_username_length"),
        CheckConstraint("length(password_hash) >= 60", name="ck_users_password_hash_length"),
    )
