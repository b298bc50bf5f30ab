"""
Domain models.
"""

from .meal import MenuItem, MenuItemCreate
from .reservation import Reservation, ReservationWithMeal, HistoryEntry
from .user import User, UserCreate, Role, Principal

__all__ = [
    "MenuItem",
    "MenuItemCreate",
    "Reservation",
    "ReservationWithMeal",
    "HistoryEntry",
    "User",
    "UserCreate",
    "Role",
    "Principal",
]
