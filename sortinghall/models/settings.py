from enum import Enum
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class Setting(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: Optional[str] = None


class RowSelectionStrategy(str, Enum):
    """Wie eine Reihe für einen Artikelruf gewählt wird (vom Lagerist gesetzt)."""

    MOST_FREE_PALLETS = "most_free_pallets"
    NEAREST_LEFT = "nearest_left"
    NEAREST_RIGHT = "nearest_right"


class HallSettingsSchema(BaseModel):
    row_selection_strategy: RowSelectionStrategy
