"""
Reservation models
"""

from pydantic import Field
import datetime as dt
from typing import Optional
from .base import BaseEntity, TimestampMixin
from .meal import MenuItem


class Reservation(BaseEntity, TimestampMixin):
    """One person's entitlement to one meal on one date"""
    id: int = Field(..., description="Reservation ID")
    holder_id: int = Field(..., description="User currently entitled to the meal")
    meal_id: int = Field(..., description="Menu item ID")
    date: dt.date = Field(..., description="Meal date, fixed at creation")
    in_exchange: bool = Field(False, description="Available for another user to claim")


class ReservationWithMeal(Reservation):
    """Reservation joined with its menu item"""
    meal: Optional[MenuItem] = Field(None, description="Menu item, None if it was deleted")


class HistoryEntry(BaseEntity):
    """Admin view of a user's reservation"""
    id: int
    date: dt.date
    choice_number: Optional[int] = Field(None, description="None when the menu item no longer exists")
    in_exchange: bool
