"""
Menu item models
Menu items are owned by the menu collaborator and read-only to the reservation core.
"""

from pydantic import BaseModel, Field
import datetime as dt
from typing import Optional
from .base import BaseEntity, TimestampMixin


class MenuItem(BaseEntity, TimestampMixin):
    """A meal offered on a date"""
    id: int = Field(..., description="Menu item ID")
    date: dt.date = Field(..., description="Date the meal is served")
    name: str = Field(..., description="Display name")
    price_cents: Optional[int] = Field(None, description="Price in cents, informational")
    position: int = Field(..., description="Order within the date, assigned on insert")
    choice_number: Optional[int] = Field(None, description="1-based rank among the date's items")


class MenuItemCreate(BaseModel):
    """Menu item creation payload"""
    date: dt.date
    name: str = Field(..., min_length=1, max_length=200)
    price_cents: Optional[int] = Field(None, ge=0)
