"""
Report service
Per-day kitchen export and per-month payroll headcount, derived from the
reservation ledger joined with the menu and user directories.

Both exports are ';'-separated UTF-8 CSV with a BOM so spreadsheet tools pick
the encoding up.  Surnames are ordered with the Unicode Collation Algorithm.
"""

import logging
import re
from datetime import date, timedelta
from functools import lru_cache
from typing import List, Optional, Tuple

import pandas as pd
from pyuca import Collator

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import MonthNotClosedError, ValidationError
from ..core.security import require_role
from ..models.report import DailyExportRow, MonthlySummaryRow
from ..models.user import DAILY_REPORT_ROLES, MONTHLY_REPORT_ROLES, Principal
from .deadline_policy import DeadlinePolicy
from .directory_service import MenuDirectory, UserDirectory
from .reservation_store import ReservationStore

logger = logging.getLogger("canteen.reports")

CSV_BOM = "\ufeff"
CSV_SEPARATOR = ";"

DAILY_HEADER = ["Choice Number", "Meal Name", "First Name", "Last Name", "Personal Number"]
MONTHLY_HEADER = ["Personal Number", "Last Name", "First Name", "Login", "Meal Count"]

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@lru_cache(maxsize=1)
def _collator() -> Collator:
    # Loading the collation table is slow, do it once
    return Collator()


def surname_key(name: str) -> Tuple[int, ...]:
    return _collator().sort_key(name or "")


def parse_month(month: str) -> Tuple[date, date]:
    """'YYYY-MM' -> (first day of the month, first day of the next month)"""
    match = _MONTH_RE.match(month or "")
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError("Month must be in YYYY-MM format", details={"month": month})
    try:
        start = date(int(match.group(1)), int(match.group(2)), 1)
        end = (start + timedelta(days=32)).replace(day=1)
    except (ValueError, OverflowError):
        raise ValidationError("Month must be in YYYY-MM format", details={"month": month})
    return start, end


def to_csv(frame: pd.DataFrame) -> str:
    return CSV_BOM + frame.to_csv(sep=CSV_SEPARATOR, index=False, lineterminator="\n")


class ReportService:
    """Daily and monthly exports"""

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

    def daily_rows(self, principal: Principal, day: date) -> List[DailyExportRow]:
        """
        Reservations for a date, ordered by choice number and then surname.

        Reservations whose meal or holder no longer exists are dropped.
        """
        require_role(principal, DAILY_REPORT_ROLES, "export daily orders")

        with self.db.snapshot() as cur:
            meals = {m.id: m for m in self.menu.list_by_date(day, con=cur)}
            reservations = self.store.list_by_date(cur, day)
            holders = self.users.get_many([r.holder_id for r in reservations], con=cur)

        rows = []
        dropped = 0
        for reservation in reservations:
            meal = meals.get(reservation.meal_id)
            holder = holders.get(reservation.holder_id)
            if meal is None or holder is None:
                dropped += 1
                continue
            rows.append(DailyExportRow(
                choice_number=meal.choice_number,
                meal_name=meal.name,
                first_name=holder.first_name,
                last_name=holder.last_name,
                personal_number=holder.personal_number or "",
            ))

        if dropped:
            logger.warning("Daily export for %s skipped %d reservations with a missing meal or user",
                           day, dropped)

        rows.sort(key=lambda r: (r.choice_number, surname_key(r.last_name)))
        return rows

    def export_daily_csv(self, principal: Principal, day: date) -> str:
        rows = self.daily_rows(principal, day)
        frame = pd.DataFrame(
            [[r.choice_number, r.meal_name, r.first_name, r.last_name, r.personal_number] for r in rows],
            columns=DAILY_HEADER,
        )
        return to_csv(frame)

    def monthly_summary(self, principal: Principal, month: str) -> List[MonthlySummaryRow]:
        """
        Meal count per user for a month that has already ended.

        Every user in the directory gets a row, including zero counts and
        deactivated accounts.
        """
        require_role(principal, MONTHLY_REPORT_ROLES, "view monthly reports")

        start, end = parse_month(month)
        if not self.policy.month_closed(start):
            raise MonthNotClosedError(month)

        with self.db.snapshot() as cur:
            counts = self.store.count_by_holder_between(cur, start, end)
            users = self.users.list_all(include_deleted=True, con=cur)

        rows = [
            MonthlySummaryRow(
                user_id=u.id,
                personal_number=u.personal_number or "",
                last_name=u.last_name,
                first_name=u.first_name,
                username=u.username,
                meal_count=counts.get(u.id, 0),
            )
            for u in users
        ]
        rows.sort(key=lambda r: surname_key(r.last_name))
        return rows

    def export_monthly_csv(self, principal: Principal, month: str) -> str:
        rows = self.monthly_summary(principal, month)
        frame = pd.DataFrame(
            [[r.personal_number, r.last_name, r.first_name, r.username, r.meal_count] for r in rows],
            columns=MONTHLY_HEADER,
        )
        return to_csv(frame)


# Global instance
report_service = ReportService()
