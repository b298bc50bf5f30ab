"""
Collaborator directories
Menu items and users as seen by the reservation core.

Both are simple record managers.  The core only reads them; the add/delete
methods exist for seeding and for the menu and account tooling that sits
outside this service.
"""

import logging
from contextlib import nullcontext
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ValidationError
from ..models.meal import MenuItem, MenuItemCreate
from ..models.user import User, UserCreate

logger = logging.getLogger("canteen.directory")

# Choice number is the rank by explicit position inside the date
_MENU_SELECT = """
SELECT id, date, name, price_cents, position, created_at,
       ROW_NUMBER() OVER (PARTITION BY date ORDER BY position, id) AS choice_number
FROM menu_items
"""

_USER_COLUMNS = "id, username, first_name, last_name, personal_number, role, is_deleted, created_at"


def _row_to_menu_item(row) -> MenuItem:
    return MenuItem(
        id=row[0],
        date=row[1],
        name=row[2],
        price_cents=row[3],
        position=row[4],
        created_at=row[5],
        choice_number=row[6],
    )


def _row_to_user(row) -> User:
    return User(
        id=row[0],
        username=row[1],
        first_name=row[2] or "",
        last_name=row[3] or "",
        personal_number=row[4],
        role=row[5],
        is_deleted=bool(row[6]),
        created_at=row[7],
    )


class MenuDirectory:
    """Menu lookups by id and by date"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def _reader(self, con):
        return nullcontext(con) if con is not None else self.db.snapshot()

    def get(self, meal_id: int, con=None) -> Optional[MenuItem]:
        with self._reader(con) as c:
            row = c.execute(
                f"SELECT * FROM ({_MENU_SELECT} WHERE date = (SELECT date FROM menu_items WHERE id=?)) "
                f"WHERE id=?",
                [meal_id, meal_id]
            ).fetchone()
        return _row_to_menu_item(row) if row else None

    def list_by_date(self, meal_date: date, con=None) -> List[MenuItem]:
        with self._reader(con) as c:
            rows = c.execute(
                f"{_MENU_SELECT} WHERE date=? ORDER BY position, id", [meal_date]
            ).fetchall()
        return [_row_to_menu_item(r) for r in rows]

    def list_range(self, start: date, end: date, con=None) -> List[MenuItem]:
        """Items with start <= date <= end"""
        if end < start:
            raise ValidationError("End date is before start date",
                                  details={"start": str(start), "end": str(end)})
        with self._reader(con) as c:
            rows = c.execute(
                f"{_MENU_SELECT} WHERE date>=? AND date<=? ORDER BY date, position, id", [start, end]
            ).fetchall()
        return [_row_to_menu_item(r) for r in rows]

    def get_many(self, meal_ids: Iterable[int], con=None) -> Dict[int, MenuItem]:
        ids = sorted(set(meal_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with self._reader(con) as c:
            rows = c.execute(
                f"SELECT * FROM ({_MENU_SELECT} WHERE date IN "
                f"(SELECT date FROM menu_items WHERE id IN ({placeholders}))) "
                f"WHERE id IN ({placeholders})",
                ids + ids
            ).fetchall()
        return {r[0]: _row_to_menu_item(r) for r in rows}

    def add(self, item: MenuItemCreate) -> MenuItem:
        return self.add_many([item])[0]

    def add_many(self, items: List[MenuItemCreate]) -> List[MenuItem]:
        """Append items to their dates in the given order"""
        created_ids = []
        with self.db.transaction() as con:
            for item in items:
                position = con.execute(
                    "SELECT COALESCE(MAX(position), 0) + 1 FROM menu_items WHERE date=?", [item.date]
                ).fetchone()[0]
                row = con.execute(
                    "INSERT INTO menu_items(date, name, price_cents, position) VALUES (?,?,?,?) RETURNING id",
                    [item.date, item.name, item.price_cents, position]
                ).fetchone()
                created_ids.append(row[0])
        logger.info("Added %d menu items", len(created_ids))
        found = self.get_many(created_ids)
        return [found[i] for i in created_ids]

    def delete(self, meal_id: int) -> bool:
        # Reservations pointing at the item are left alone
        with self.db.transaction() as con:
            row = con.execute("DELETE FROM menu_items WHERE id=? RETURNING id", [meal_id]).fetchone()
        return row is not None


class UserDirectory:
    """User lookups for ownership checks and report joins"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def _reader(self, con):
        return nullcontext(con) if con is not None else self.db.snapshot()

    def get(self, user_id: int, con=None) -> Optional[User]:
        with self._reader(con) as c:
            row = c.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id=?", [user_id]).fetchone()
        return _row_to_user(row) if row else None

    def get_many(self, user_ids: Iterable[int], con=None) -> Dict[int, User]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with self._reader(con) as c:
            rows = c.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id IN ({placeholders})", ids
            ).fetchall()
        return {r[0]: _row_to_user(r) for r in rows}

    def list_all(self, include_deleted: bool = True, con=None) -> List[User]:
        query = f"SELECT {_USER_COLUMNS} FROM users"
        if not include_deleted:
            query += " WHERE NOT is_deleted"
        with self._reader(con) as c:
            rows = c.execute(query + " ORDER BY id").fetchall()
        return [_row_to_user(r) for r in rows]

    def add(self, user: UserCreate) -> User:
        with self.db.transaction() as con:
            exists = con.execute("SELECT 1 FROM users WHERE username=?", [user.username]).fetchone()
            if exists:
                raise ValidationError("Username already exists", details={"username": user.username})
            row = con.execute(
                f"INSERT INTO users(username, first_name, last_name, personal_number, role) "
                f"VALUES (?,?,?,?,?) RETURNING {_USER_COLUMNS}",
                [user.username, user.first_name, user.last_name, user.personal_number, user.role.value]
            ).fetchone()
        return _row_to_user(row)

    def soft_delete(self, user_id: int) -> bool:
        with self.db.transaction() as con:
            row = con.execute(
                "UPDATE users SET is_deleted=TRUE WHERE id=? RETURNING id", [user_id]
            ).fetchone()
        return row is not None
