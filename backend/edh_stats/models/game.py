"""
Game model: the result of one played game.
"""
from sqlalchemy import Column, Boolean, Date, ForeignKey, Integer, Text, CheckConstraint, Index
from sqlalchemy.orm import relationship
from edh_stats.db.base import BaseModel


class Game(BaseModel):
    """A single game logged by a user with one of their commanders."""
    __tablename__ = "games"

    date = Column(Date, nullable=False, index=True)
    player_count = Column(Integer, nullable=False)
    commander_id = Column(Integer, ForeignKey("commanders.id", ondelete="CASCADE"), nullable=False, index=True)
    won = Column(Boolean, nullable=False, default=False)
    rounds = Column(Integer, nullable=True)
    starting_player_won = Column(Boolean, nullable=False, default=False)
    sol_ring_turn_one_won = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    commander = relationship("Commander", back_populates="games")
    user = relationship("User", back_populates="games")

    __table_args__ = (
        CheckConstraint("player_count >= 2 AND player_count <= 8", name="ck_games_player_count"),
        CheckConstraint("rounds IS NULL OR (rounds >= 1 AND rounds <= 50)", name="ck_games_rounds"),
        CheckConstraint("notes IS NULL OR length(notes) <= 1000", name="ck_games_notes_length"),
        Index("ix_games_user_commander", "user_id", "commander_id"),
        Index("ix_games_user_date", "user_id", "date"),
    )
