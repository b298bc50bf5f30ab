"""
Reservation store
Keyed access to the reservations table.

Every method takes the connection to run on, so the lifecycle engine can
compose several calls inside one DatabaseManager.transaction() and the read
side can use a DatabaseManager.snapshot() cursor.
"""

from datetime import date
from typing import Dict, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..models.reservation import Reservation

_COLUMNS = "id, holder_id, meal_id, date, in_exchange, created_at, updated_at"


def _row_to_reservation(row) -> Reservation:
    return Reservation(
        id=row[0],
        holder_id=row[1],
        meal_id=row[2],
        date=row[3],
        in_exchange=bool(row[4]),
        created_at=row[5],
        updated_at=row[6],
    )


class ReservationStore:
    """CRUD by reservation id and lookup by (holder, date)"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def get(self, con, reservation_id: int) -> Optional[Reservation]:
        row = con.execute(
            f"SELECT {_COLUMNS} FROM reservations WHERE id=?", [reservation_id]
        ).fetchone()
        return _row_to_reservation(row) if row else None

    def find_by_holder_and_date(self, con, holder_id: int, meal_date: date) -> Optional[Reservation]:
        """Oldest reservation held by the user for the date"""
        row = con.execute(
            f"SELECT {_COLUMNS} FROM reservations WHERE holder_id=? AND date=? ORDER BY id LIMIT 1",
            [holder_id, meal_date]
        ).fetchone()
        return _row_to_reservation(row) if row else None

    def count_by_holder_and_date(self, con, holder_id: int, meal_date: date) -> int:
        return con.execute(
            "SELECT COUNT(*) FROM reservations WHERE holder_id=? AND date=?",
            [holder_id, meal_date]
        ).fetchone()[0]

    def insert(self, con, holder_id: int, meal_id: int, meal_date: date) -> Reservation:
        row = con.execute(
            f"INSERT INTO reservations(holder_id, meal_id, date, in_exchange) VALUES (?,?,?,FALSE) "
            f"RETURNING {_COLUMNS}",
            [holder_id, meal_id, meal_date]
        ).fetchone()
        return _row_to_reservation(row)

    def set_meal(self, con, reservation_id: int, meal_id: int) -> Optional[Reservation]:
        """Swap the meal and withdraw any pending release"""
        row = con.execute(
            f"UPDATE reservations SET meal_id=?, in_exchange=FALSE, updated_at=now() WHERE id=? "
            f"RETURNING {_COLUMNS}",
            [meal_id, reservation_id]
        ).fetchone()
        return _row_to_reservation(row) if row else None

    def mark_in_exchange(self, con, reservation_id: int, holder_id: int) -> Optional[Reservation]:
        row = con.execute(
            f"UPDATE reservations SET in_exchange=TRUE, updated_at=now() "
            f"WHERE id=? AND holder_id=? AND NOT in_exchange RETURNING {_COLUMNS}",
            [reservation_id, holder_id]
        ).fetchone()
        return _row_to_reservation(row) if row else None

    def transfer(self, con, reservation_id: int, from_holder_id: int, to_holder_id: int) -> Optional[Reservation]:
        """Hand a released reservation to a new holder; None if it is no longer released"""
        row = con.execute(
            f"UPDATE reservations SET holder_id=?, in_exchange=FALSE, updated_at=now() "
            f"WHERE id=? AND holder_id=? AND in_exchange RETURNING {_COLUMNS}",
            [to_holder_id, reservation_id, from_holder_id]
        ).fetchone()
        return _row_to_reservation(row) if row else None

    def delete(self, con, reservation_id: int) -> bool:
        row = con.execute(
            "DELETE FROM reservations WHERE id=? RETURNING id", [reservation_id]
        ).fetchone()
        return row is not None

    def list_in_exchange(self, con, exclude_holder_id: Optional[int] = None) -> List[Reservation]:
        if exclude_holder_id is None:
            rows = con.execute(
                f"SELECT {_COLUMNS} FROM reservations WHERE in_exchange ORDER BY date, id"
            ).fetchall()
        else:
            rows = con.execute(
                f"SELECT {_COLUMNS} FROM reservations WHERE in_exchange AND holder_id<>? ORDER BY date, id",
                [exclude_holder_id]
            ).fetchall()
        return [_row_to_reservation(r) for r in rows]

    def list_by_date(self, con, meal_date: date) -> List[Reservation]:
        rows = con.execute(
            f"SELECT {_COLUMNS} FROM reservations WHERE date=? ORDER BY id", [meal_date]
        ).fetchall()
        return [_row_to_reservation(r) for r in rows]

    def list_by_holder(self, con, holder_id: int, since: Optional[date] = None) -> List[Reservation]:
        if since is None:
            rows = con.execute(
                f"SELECT {_COLUMNS} FROM reservations WHERE holder_id=? ORDER BY date, id",
                [holder_id]
            ).fetchall()
        else:
            rows = con.execute(
                f"SELECT {_COLUMNS} FROM reservations WHERE holder_id=? AND date>=? ORDER BY date, id",
                [holder_id, since]
            ).fetchall()
        return [_row_to_reservation(r) for r in rows]

    def count_by_holder_between(self, con, start: date, end: date) -> Dict[int, int]:
        """Reservation count per holder for start <= date < end"""
        rows = con.execute(
            "SELECT holder_id, COUNT(*) FROM reservations WHERE date>=? AND date<? GROUP BY holder_id",
            [start, end]
        ).fetchall()
        return {r[0]: r[1] for r in rows}
