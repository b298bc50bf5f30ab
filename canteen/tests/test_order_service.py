"""
Order service tests
Reservation lifecycle against an in-memory database and a hand-moved clock.
"""

import json
from datetime import date

import pytest

from canteen.core.exceptions import (
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
from canteen.models.meal import MenuItemCreate

from conftest import MEAL_DAY


def audit_actions(db):
    return [r[0] for r in db.execute_query("SELECT action FROM logs ORDER BY log_id")]


class TestPlace:
    """Placing reservations"""

    def test_place_success(self, order_service, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)

        assert reservation.id is not None
        assert reservation.holder_id == novak.user_id
        assert reservation.meal_id == meals["Soup"].id
        assert reservation.date == MEAL_DAY
        assert reservation.in_exchange is False

    def test_place_second_meal_same_day_rejected(self, order_service, store, test_db, novak, meals):
        order_service.place(novak, meals["Soup"].id)

        with pytest.raises(AlreadyReservedError):
            order_service.place(novak, meals["Goulash"].id)

        with test_db.snapshot() as cur:
            assert store.count_by_holder_and_date(cur, novak.user_id, MEAL_DAY) == 1

    def test_place_other_days_independent(self, order_service, novak, meals):
        first = order_service.place(novak, meals["Soup"].id)
        second = order_service.place(novak, meals["Schnitzel"].id)
        assert first.id != second.id

    def test_place_unknown_meal(self, order_service, novak, meals):
        with pytest.raises(MealNotFoundError):
            order_service.place(novak, 9999)

    def test_place_after_order_cutoff(self, order_service, clock, novak, meals):
        clock.set(2024, 3, 15, 0, 0)

        with pytest.raises(DeadlinePassedError) as exc_info:
            order_service.place(novak, meals["Soup"].id)

        assert exc_info.value.details["cutoff"] == "order"
        assert exc_info.value.details["date"] == "2024-03-15"

    def test_place_after_cutoff_reports_deadline_before_duplicate(self, order_service, clock, novak, meals):
        order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 8, 0)

        with pytest.raises(DeadlinePassedError):
            order_service.place(novak, meals["Goulash"].id)

    def test_place_writes_audit_row(self, order_service, test_db, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)

        row = test_db.execute_one("SELECT user_id, actor_id, action, detail_json FROM logs")
        assert row[0] == novak.user_id
        assert row[1] == novak.user_id
        assert row[2] == "reservation_place"
        assert json.loads(row[3])["reservation_id"] == reservation.id

    def test_rejected_place_writes_nothing(self, order_service, test_db, novak, meals):
        order_service.place(novak, meals["Soup"].id)
        with pytest.raises(AlreadyReservedError):
            order_service.place(novak, meals["Goulash"].id)

        assert audit_actions(test_db) == ["reservation_place"]


class TestChange:
    """Swapping the reserved meal"""

    def test_change_keeps_identity(self, order_service, novak, meals):
        original = order_service.place(novak, meals["Soup"].id)

        changed = order_service.change(novak, meals["Goulash"].id)
        assert changed.id == original.id
        assert changed.meal_id == meals["Goulash"].id
        assert changed.date == MEAL_DAY

        restored = order_service.change(novak, meals["Soup"].id)
        assert restored.id == original.id
        assert restored.meal_id == meals["Soup"].id

    def test_change_without_reservation(self, order_service, novak, meals):
        with pytest.raises(ReservationNotFoundError) as exc_info:
            order_service.change(novak, meals["Goulash"].id)
        assert exc_info.value.details["date"] == "2024-03-15"

    def test_change_after_order_cutoff(self, order_service, clock, novak, meals):
        order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 8, 0)

        with pytest.raises(DeadlinePassedError):
            order_service.change(novak, meals["Goulash"].id)

    def test_change_unknown_meal(self, order_service, novak, meals):
        order_service.place(novak, meals["Soup"].id)
        with pytest.raises(MealNotFoundError):
            order_service.change(novak, 9999)


class TestCancel:
    """Cancelling before the ordering deadline"""

    def test_cancel_then_place_gets_new_id(self, order_service, test_db, store, novak, meals):
        first = order_service.place(novak, meals["Soup"].id)

        cancelled = order_service.cancel(novak, first.id)
        assert cancelled.id == first.id
        with test_db.snapshot() as cur:
            assert store.get(cur, first.id) is None

        second = order_service.place(novak, meals["Soup"].id)
        assert second.id != first.id

    def test_cancel_after_order_cutoff(self, order_service, clock, test_db, store, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 7, 0)

        with pytest.raises(DeadlinePassedError) as exc_info:
            order_service.cancel(novak, reservation.id)
        assert "exchange" in exc_info.value.message

        with test_db.snapshot() as cur:
            assert store.get(cur, reservation.id) is not None

    def test_cancel_someone_elses(self, order_service, novak, cermak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)

        with pytest.raises(ForbiddenError):
            order_service.cancel(cermak, reservation.id)

    def test_cancel_unknown(self, order_service, novak, meals):
        with pytest.raises(ReservationNotFoundError):
            order_service.cancel(novak, 12345)


class TestRelease:
    """Putting a meal in the exchange"""

    def test_release_between_cutoffs(self, order_service, clock, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 9, 0)

        released = order_service.release(novak, reservation.id)
        assert released.id == reservation.id
        assert released.in_exchange is True
        assert released.holder_id == novak.user_id

    def test_release_before_order_cutoff(self, order_service, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)

        with pytest.raises(DeadlinePassedError) as exc_info:
            order_service.release(novak, reservation.id)
        assert exc_info.value.details["cutoff"] == "order"

    def test_release_after_exchange_cutoff(self, order_service, clock, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 12, 0)

        with pytest.raises(DeadlinePassedError) as exc_info:
            order_service.release(novak, reservation.id)
        assert exc_info.value.details["cutoff"] == "exchange"

    def test_release_twice(self, order_service, clock, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 9, 0)
        order_service.release(novak, reservation.id)

        with pytest.raises(AlreadyInExchangeError):
            order_service.release(novak, reservation.id)

    def test_release_someone_elses(self, order_service, clock, novak, cermak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 9, 0)

        with pytest.raises(ForbiddenError):
            order_service.release(cermak, reservation.id)


class TestClaim:
    """Taking over a released meal"""

    @pytest.fixture
    def released(self, order_service, clock, novak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 9, 0)
        return order_service.release(novak, reservation.id)

    def test_claim_transfers_holder(self, order_service, released, cermak):
        claimed = order_service.claim(cermak, released.id)

        assert claimed.id == released.id
        assert claimed.holder_id == cermak.user_id
        assert claimed.in_exchange is False
        assert claimed.meal_id == released.meal_id

    def test_claim_has_no_deadline(self, order_service, clock, released, cermak):
        clock.set(2024, 3, 15, 13, 30)
        claimed = order_service.claim(cermak, released.id)
        assert claimed.holder_id == cermak.user_id

    def test_claim_not_released(self, order_service, novak, cermak, meals):
        reservation = order_service.place(novak, meals["Soup"].id)

        with pytest.raises(NotInExchangeError):
            order_service.claim(cermak, reservation.id)

    def test_claim_own(self, order_service, released, novak):
        with pytest.raises(SelfClaimError):
            order_service.claim(novak, released.id)

    def test_claim_twice(self, order_service, released, cermak, dvorak):
        order_service.claim(cermak, released.id)

        with pytest.raises(NotInExchangeError):
            order_service.claim(dvorak, released.id)

    def test_claim_unknown(self, order_service, released, cermak):
        with pytest.raises(ReservationNotFoundError):
            order_service.claim(cermak, 12345)

    def test_claimant_may_hold_two_meals(self, order_service, clock, store, test_db, novak, cermak, meals):
        clock.set(2024, 3, 14, 10, 0)
        order_service.place(cermak, meals["Goulash"].id)
        theirs = order_service.place(novak, meals["Soup"].id)
        clock.set(2024, 3, 15, 9, 0)
        order_service.release(novak, theirs.id)

        order_service.claim(cermak, theirs.id)

        with test_db.snapshot() as cur:
            assert store.count_by_holder_and_date(cur, cermak.user_id, MEAL_DAY) == 2

    def test_claimed_meal_can_be_released_again(self, order_service, released, cermak, dvorak):
        order_service.claim(cermak, released.id)
        again = order_service.release(cermak, released.id)
        assert again.in_exchange is True

        final = order_service.claim(dvorak, released.id)
        assert final.holder_id == dvorak.user_id

    def test_lifecycle_audit_trail(self, order_service, test_db, released, cermak):
        order_service.claim(cermak, released.id)
        assert audit_actions(test_db) == ["reservation_place", "reservation_release", "reservation_claim"]


class TestListings:
    """Own reservations and admin history"""

    def test_my_reservations_window(self, order_service, menu, clock, novak, meals):
        january = menu.add(MenuItemCreate(date=date(2024, 1, 10), name="Risotto"))
        february = menu.add(MenuItemCreate(date=date(2024, 2, 20), name="Dumplings"))
        clock.set(2024, 1, 5, 10, 0)
        order_service.place(novak, january.id)
        order_service.place(novak, february.id)
        clock.set(2024, 3, 14, 10, 0)
        order_service.place(novak, meals["Soup"].id)

        mine = order_service.list_my_reservations(novak)

        assert [r.date for r in mine] == [date(2024, 2, 20), MEAL_DAY]
        assert mine[1].meal.name == "Soup"
        assert mine[1].meal.choice_number == 1

    def test_my_reservations_after_claim(self, order_service, clock, novak, cermak, meals):
        reservation = order_service.place(novak, meals["Goulash"].id)
        clock.set(2024, 3, 15, 9, 0)
        order_service.release(novak, reservation.id)
        order_service.claim(cermak, reservation.id)

        assert order_service.list_my_reservations(novak) == []
        assert [r.id for r in order_service.list_my_reservations(cermak)] == [reservation.id]

    def test_user_history(self, order_service, meal_admin, novak, meals):
        first = order_service.place(novak, meals["Goulash"].id)
        second = order_service.place(novak, meals["Schnitzel"].id)

        history = order_service.user_history(meal_admin, novak.user_id)

        assert [h.id for h in history] == [second.id, first.id]
        assert history[1].choice_number == 2
        assert history[0].choice_number == 1

    def test_user_history_requires_admin(self, order_service, novak, cermak, people):
        with pytest.raises(ForbiddenError):
            order_service.user_history(cermak, novak.user_id)

    def test_user_history_unknown_user(self, order_service, user_admin, people):
        with pytest.raises(UserNotFoundError):
            order_service.user_history(user_admin, 9999)
