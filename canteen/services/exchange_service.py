"""
Exchange service
Read-only view of meals released by their holders and open for claiming.
"""

from typing import List, Optional

from ..core.database import DatabaseManager, db_manager
from ..models.reservation import ReservationWithMeal
from ..models.user import Principal
from .directory_service import MenuDirectory
from .reservation_store import ReservationStore


class ExchangeService:
    """Derives the exchange pool from the reservation ledger on every call"""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        store: Optional[ReservationStore] = None,
        menu: Optional[MenuDirectory] = None,
    ):
        self.db = db or db_manager
        self.store = store or ReservationStore(self.db)
        self.menu = menu or MenuDirectory(self.db)

    def list_available(self, viewer: Principal) -> List[ReservationWithMeal]:
        """Released reservations the viewer could claim, i.e. everyone else's"""
        with self.db.snapshot() as cur:
            released = self.store.list_in_exchange(cur, exclude_holder_id=viewer.user_id)
            meals = self.menu.get_many([r.meal_id for r in released], con=cur)

        return [
            ReservationWithMeal(**r.model_dump(), meal=meals.get(r.meal_id))
            for r in released
        ]


# Global instance
exchange_service = ExchangeService()
