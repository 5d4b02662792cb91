"""
Pydantic schemas for Game entity.
"""
import enum
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
import datetime

from edh_stats.core import validators
from edh_stats.schemas.common import SortOrder

NON_NULLABLE_UPDATE_FIELDS = (
    "date",
    "player_count",
    "commander_id",
    "won",
    "starting_player_won",
    "sol_ring_turn_one_won",
)


class GameCreate(BaseModel):
    """Schema for game creation."""
    date: datetime.date
    player_count: int = Field(ge=2, le=8)
    commander_id: int = Field(gt=0)
    won: bool = False
    rounds: Optional[int] = Field(default=None, ge=1, le=50)
    starting_player_won: bool = False
    sol_ring_turn_one_won: bool = False
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return validators.check_game_date(v)

    @field_validator("notes")
    @classmethod
    def check_notes(cls, v):
        return validators.check_notes(v)


class GameUpdate(BaseModel):
    """Schema for game update. Fields left out are not touched."""
    date: Optional[datetime.date] = None
    player_count: Optional[int] = Field(default=None, ge=2, le=8)
    commander_id: Optional[int] = Field(default=None, gt=0)
    won: Optional[bool] = None

    class Config:
        extra = "forbid"
    rounds: Optional[int] = Field(default=None, ge=1, le=50)
    starting_player_won: Optional[bool] = None
    sol_ring_turn_one_won: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        if v is None:
            return v
        return validators.check_game_date(v)

    @field_validator("notes")
    @classmethod
    def check_notes(cls, v):
        return validators.check_notes(v)

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [f for f in NON_NULLABLE_UPDATE_FIELDS if f in self.model_fields_set and getattr(self, f) is None]
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


class GameFilters(BaseModel):
    """Optional predicates for game lists and exports."""
    commander: Optional[str] = Field(default=None, min_length=1, max_length=100)
    player_count: Optional[int] = Field(default=None, ge=2, le=8)
    commander_id: Optional[int] = Field(default=None, gt=0)
    date_from: Optional[datetime.date] = None
    date_to: Optional[datetime.date] = None
    won: Optional[bool] = None

    class Config:
        extra = "forbid"

    @model_validator(mode="after")
    def check_date_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be before or equal to date_to")
        return self


class GameSortField(str, enum.Enum):
    """Columns a game list may be ordered by."""
    DATE = "date"
    CREATED_AT = "created_at"
    PLAYER_COUNT = "player_count"
    ROUNDS = "rounds"


class GameSort(BaseModel):
    field: GameSortField = GameSortField.DATE
    order: SortOrder = SortOrder.DESC

    class Config:
        extra = "forbid"


class GameResponse(BaseModel):
    """Schema for game response, with the commander it was played with."""
    id: int
    date: datetime.date
    player_count: int
    commander_id: int
    won: bool
    rounds: Optional[int] = None
    starting_player_won: bool
    sol_ring_turn_one_won: bool
    notes: Optional[str] = None
    user_id: int
    commander_name: Optional[str] = None
    commander_colors: List[str] = []
    created_at: datetime.datetime
    updated_at: datetime.datetime

    class Config:
        from_attributes = True
