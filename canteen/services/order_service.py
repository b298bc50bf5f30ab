"""
Order service
Reservation lifecycle: place, change, cancel, release to the exchange, claim.

State per (holder, date) slot:
    None -> Held (in_exchange=False) -> Released (in_exchange=True)
    Released -> Held by another user (claim)
    Held -> None (cancel, before the order cutoff only)

Business rules:
- one reservation per user per date (place and change; claim may exceed it)
- place, change and cancel close at the order cutoff (00:00 of the meal date)
- release opens at the order cutoff and closes at the exchange cutoff (12:00)
- claim has no deadline
- each operation reads, validates and writes inside one transaction
"""

import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.security import require_role
from ..core.exceptions import (
    AlreadyInExchangeError,
    AlreadyReservedError,
    DeadlinePassedError,
    ForbiddenError,
    MealNotFoundError,
    NotInExchangeError,
    ReservationNotFoundError,
    SelfClaimError,
    UserNotFoundError,
)
from ..models.reservation import HistoryEntry, Reservation, ReservationWithMeal
from ..models.user import HISTORY_ROLES, ORDERING_ROLES, Principal
from .deadline_policy import DeadlinePolicy
from .directory_service import MenuDirectory, UserDirectory
from .reservation_store import ReservationStore

logger = logging.getLogger("canteen.orders")


class OrderService:
    """Reservation state machine"""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        policy: Optional[DeadlinePolicy] = None,
        store: Optional[ReservationStore] = None,
        menu: Optional[MenuDirectory] = None,
        users: Optional[UserDirectory] = None,
    ):
        self.db = db or db_manager
        self.policy = policy or DeadlinePolicy()
        self.store = store or ReservationStore(self.db)
        self.menu = menu or MenuDirectory(self.db)
        self.users = users or UserDirectory(self.db)

    def place(self, principal: Principal, meal_id: int) -> Reservation:
        """
        Reserve a meal.

        Raises:
            MealNotFoundError: unknown meal
            DeadlinePassedError: order cutoff for the meal date has passed
            AlreadyReservedError: the user already holds a reservation for that date
        """
        require_role(principal, ORDERING_ROLES, "place orders")

        with self.db.transaction() as con:
            meal = self.menu.get(meal_id, con=con)
            if meal is None:
                raise MealNotFoundError(meal_id)

            if self.policy.order_cutoff_passed(meal.date):
                raise DeadlinePassedError("order", meal.date)

            if self.store.find_by_holder_and_date(con, principal.user_id, meal.date):
                raise AlreadyReservedError(principal.user_id, meal.date)

            reservation = self.store.insert(con, principal.user_id, meal.id, meal.date)
            self._log(con, principal.user_id, principal.user_id, "reservation_place", {
                "reservation_id": reservation.id,
                "meal_id": meal.id,
                "meal_name": meal.name,
                "date": str(meal.date),
            })

        logger.info("User %s reserved meal %s for %s", principal.user_id, meal.id, meal.date)
        return reservation

    def change(self, principal: Principal, meal_id: int) -> Reservation:
        """
        Swap the meal of the user's reservation for the new meal's date.

        The reservation keeps its id and date.  A pending release is withdrawn.

        Raises:
            MealNotFoundError: unknown meal
            DeadlinePassedError: order cutoff for the meal date has passed
            ReservationNotFoundError: nothing reserved for that date
        """
        require_role(principal, ORDERING_ROLES, "change orders")

        with self.db.transaction() as con:
            meal = self.menu.get(meal_id, con=con)
            if meal is None:
                raise MealNotFoundError(meal_id)

            if self.policy.order_cutoff_passed(meal.date):
                raise DeadlinePassedError("order", meal.date)

            existing = self.store.find_by_holder_and_date(con, principal.user_id, meal.date)
            if existing is None:
                raise ReservationNotFoundError(
                    message="You have no reservation to change for this day",
                    date=str(meal.date),
                )

            updated = self.store.set_meal(con, existing.id, meal.id)
            self._log(con, principal.user_id, principal.user_id, "reservation_change", {
                "reservation_id": existing.id,
                "old_meal_id": existing.meal_id,
                "new_meal_id": meal.id,
                "was_in_exchange": existing.in_exchange,
                "date": str(meal.date),
            })

        logger.info("User %s changed reservation %s to meal %s", principal.user_id, existing.id, meal.id)
        return updated

    def cancel(self, principal: Principal, reservation_id: int) -> Reservation:
        """
        Delete the user's reservation.  Only allowed before the order cutoff;
        afterwards the reservation has to go through the exchange.

        Returns the deleted record.

        Raises:
            ReservationNotFoundError, ForbiddenError, DeadlinePassedError
        """
        require_role(principal, ORDERING_ROLES, "cancel orders")

        with self.db.transaction() as con:
            reservation = self._get_owned(con, principal, reservation_id)

            if self.policy.order_cutoff_passed(reservation.date):
                raise DeadlinePassedError(
                    "order", reservation.date,
                    "Cannot cancel after the deadline, put the meal in the exchange instead",
                )

            self.store.delete(con, reservation_id)
            self._log(con, principal.user_id, principal.user_id, "reservation_cancel", {
                "reservation_id": reservation_id,
                "meal_id": reservation.meal_id,
                "date": str(reservation.date),
            })

        logger.info("User %s cancelled reservation %s", principal.user_id, reservation_id)
        return reservation

    def release(self, principal: Principal, reservation_id: int) -> Reservation:
        """
        Offer the user's reservation in the exchange.

        Only possible once cancelling is closed (order cutoff) and before the
        exchange cutoff.

        Raises:
            ReservationNotFoundError, ForbiddenError, DeadlinePassedError,
            AlreadyInExchangeError
        """
        require_role(principal, ORDERING_ROLES, "release orders")

        with self.db.transaction() as con:
            reservation = self._get_owned(con, principal, reservation_id)

            if not self.policy.order_cutoff_passed(reservation.date):
                raise DeadlinePassedError(
                    "order", reservation.date,
                    "The reservation can still be cancelled, the exchange opens at the ordering deadline",
                )
            if self.policy.exchange_cutoff_passed(reservation.date):
                raise DeadlinePassedError("exchange", reservation.date)

            if reservation.in_exchange:
                raise AlreadyInExchangeError(reservation_id)

            released = self.store.mark_in_exchange(con, reservation_id, principal.user_id)
            self._log(con, principal.user_id, principal.user_id, "reservation_release", {
                "reservation_id": reservation_id,
                "meal_id": reservation.meal_id,
                "date": str(reservation.date),
            })

        logger.info("User %s released reservation %s", principal.user_id, reservation_id)
        return released

    def claim(self, principal: Principal, reservation_id: int) -> Reservation:
        """
        Take over a released reservation.

        The claimant becomes the holder.  A claimant who already holds a meal
        for that date may still claim another one.

        Raises:
            ReservationNotFoundError, NotInExchangeError, SelfClaimError
        """
        require_role(principal, ORDERING_ROLES, "claim orders")

        with self.db.transaction() as con:
            reservation = self.store.get(con, reservation_id)
            if reservation is None:
                raise ReservationNotFoundError(reservation_id)

            if not reservation.in_exchange:
                raise NotInExchangeError(reservation_id)

            if reservation.holder_id == principal.user_id:
                raise SelfClaimError(reservation_id)

            claimed = self.store.transfer(con, reservation_id, reservation.holder_id, principal.user_id)
            if claimed is None:
                raise NotInExchangeError(reservation_id)

            self._log(con, principal.user_id, principal.user_id, "reservation_claim", {
                "reservation_id": reservation_id,
                "meal_id": reservation.meal_id,
                "date": str(reservation.date),
                "previous_holder_id": reservation.holder_id,
            })

        logger.info("User %s claimed reservation %s from user %s",
                    principal.user_id, reservation_id, reservation.holder_id)
        return claimed

    def list_my_reservations(self, principal: Principal) -> List[ReservationWithMeal]:
        """Caller's reservations from the first day of the previous month onwards"""
        first_of_month = self.policy.today().replace(day=1)
        since = (first_of_month - timedelta(days=1)).replace(day=1)

        with self.db.snapshot() as cur:
            reservations = self.store.list_by_holder(cur, principal.user_id, since=since)
            meals = self.menu.get_many([r.meal_id for r in reservations], con=cur)

        return [
            ReservationWithMeal(**r.model_dump(), meal=meals.get(r.meal_id))
            for r in reservations
        ]

    def user_history(self, principal: Principal, user_id: int) -> List[HistoryEntry]:
        """Full reservation history of a user with choice numbers, newest first"""
        require_role(principal, HISTORY_ROLES, "view user history")

        with self.db.snapshot() as cur:
            if self.users.get(user_id, con=cur) is None:
                raise UserNotFoundError(user_id)
            reservations = self.store.list_by_holder(cur, user_id)
            meals = self.menu.get_many([r.meal_id for r in reservations], con=cur)

        history = [
            HistoryEntry(
                id=r.id,
                date=r.date,
                choice_number=meals[r.meal_id].choice_number if r.meal_id in meals else None,
                in_exchange=r.in_exchange,
            )
            for r in reservations
        ]
        history.sort(key=lambda h: (h.date, h.id), reverse=True)
        return history

    def _get_owned(self, con, principal: Principal, reservation_id: int) -> Reservation:
        reservation = self.store.get(con, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        if reservation.holder_id != principal.user_id:
            raise ForbiddenError(
                "The reservation belongs to someone else",
                reservation_id=reservation_id,
            )
        return reservation

    def _log(self, con, user_id: int, actor_id: int, action: str, detail: Dict[str, Any]):
        """Audit row written inside the operation's transaction"""
        con.execute(
            "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
            [user_id, actor_id, action, json.dumps(detail)],
        )


# Global instance
order_service = OrderService()
