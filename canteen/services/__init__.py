"""
Business logic services.
Reservation lifecycle, exchange pool and reporting over the reservation ledger.
"""

from .deadline_policy import DeadlinePolicy
from .directory_service import MenuDirectory, UserDirectory
from .exchange_service import ExchangeService, exchange_service
from .order_service import OrderService, order_service
from .report_service import ReportService, report_service
from .reservation_store import ReservationStore

__all__ = [
    "DeadlinePolicy",
    "MenuDirectory",
    "UserDirectory",
    "ExchangeService",
    "OrderService",
    "ReportService",
    "ReservationStore",
    "exchange_service",
    "order_service",
    "report_service",
]
