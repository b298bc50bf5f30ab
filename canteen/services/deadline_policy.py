"""
Deadline policy
Order and exchange cutoffs for a meal date.

- order cutoff: 00:00 local time on the meal date. From then on a reservation
  for that date can no longer be placed, changed or cancelled.
- exchange cutoff: 12:00 local time on the meal date. From then on no
  reservation for that date may newly enter the exchange.

The module-level functions are pure.  DeadlinePolicy binds them to a clock and
re-reads the clock on every call.
"""

from datetime import date, datetime, time
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..config.settings import settings

Clock = Callable[[], datetime]


def cutoff_instant(meal_date: date, hour: int, tz: ZoneInfo) -> datetime:
    return datetime.combine(meal_date, time(hour=hour), tzinfo=tz)


def order_cutoff_passed(meal_date: date, now: datetime, tz: ZoneInfo,
                        hour: int = 0) -> bool:
    return now >= cutoff_instant(meal_date, hour, tz)


def exchange_cutoff_passed(meal_date: date, now: datetime, tz: ZoneInfo,
                           hour: int = 12) -> bool:
    return now >= cutoff_instant(meal_date, hour, tz)


def month_closed(month_start: date, today: date) -> bool:
    """True if the month starting at month_start ended before today's month"""
    return month_start < today.replace(day=1)


class DeadlinePolicy:
    """Cutoff checks against the wall clock in the configured time zone"""

    def __init__(self, clock: Optional[Clock] = None, tz_name: Optional[str] = None,
                 order_cutoff_hour: Optional[int] = None,
                 exchange_cutoff_hour: Optional[int] = None):
        self.tz = ZoneInfo(tz_name or settings.timezone)
        self.order_cutoff_hour = settings.order_cutoff_hour if order_cutoff_hour is None else order_cutoff_hour
        self.exchange_cutoff_hour = (settings.exchange_cutoff_hour
                                     if exchange_cutoff_hour is None else exchange_cutoff_hour)
        self._clock = clock or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=self.tz)
        return current

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    def order_cutoff_passed(self, meal_date: date) -> bool:
        return order_cutoff_passed(meal_date, self.now(), self.tz, self.order_cutoff_hour)

    def exchange_cutoff_passed(self, meal_date: date) -> bool:
        return exchange_cutoff_passed(meal_date, self.now(), self.tz, self.exchange_cutoff_hour)

    def month_closed(self, month_start: date) -> bool:
        return month_closed(month_start, self.today())
