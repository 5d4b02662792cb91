"""
Pydantic schemas for Commander entity.
"""
import enum
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime

from edh_stats.core import validators
from edh_stats.schemas.common import SortOrder


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


class CommanderCreate(BaseModel):
    """Schema for commander creation."""
    name: str = Field(min_length=2, max_length=100)
    colors: List[str]

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("colors")
    @classmethod
    def check_colors(cls, v):
        return validators.normalize_colors(v)


class CommanderUpdate(BaseModel):
    """Schema for commander update."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    colors: Optional[List[str]] = None

    class Config:
        extra = "forbid"

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("name", "colors")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("colors")
    @classmethod
    def check_colors(cls, v):
        return validators.normalize_colors(v)


class CommanderSortField(str, enum.Enum):
    """Columns a commander list may be ordered by."""
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    NAME = "name"
    TOTAL_GAMES = "total_games"


class CommanderSort(BaseModel):
    field: CommanderSortField = CommanderSortField.CREATED_AT
    order: SortOrder = SortOrder.DESC

    class Config:
        extra = "forbid"


class CommanderFilters(BaseModel):
    """Optional predicates for commander lists."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    class Config:
        extra = "forbid"


class CommanderResponse(BaseModel):
    """Schema for commander response."""
    id: int
    name: str
    colors: List[str]
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommanderWithStats(CommanderResponse):
    """Commander plus its game totals."""
    total_games: int = 0
    total_wins: int = 0
    win_rate: float = 0.0
    avg_rounds: float = 0.0
    last_played: Optional[date] = None
