"""
Commander model: a named deck with a color identity.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, JSON, CheckConstraint, Index, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from edh_stats.db.base import BaseModel

COLORS_TYPE = JSON().with_variant(JSONB(), "postgresql")


class Commander(BaseModel):
    """Commander deck owned by exactly one user."""
    __tablename__ = "commanders"

    name = Column(String(100), nullable=False)
    colors = Column(COLORS_TYPE, nullable=False)  # canonical WUBRG order
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="commanders")
    games = relationship("Game", back_populates="commander", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("length(name) >= 2", name="ck_commanders_name_length"),
    )


# Store-level backstop for case-insensitive name uniqueness per owner
Index(
    "uq_commanders_user_lower_name",
    Commander.user_id,
    func.lower(Commander.name),
    unique=True,
)
