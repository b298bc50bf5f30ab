"""
FastAPI dependencies resolving the services bound to the running app
"""

from fastapi import Request

from ..services.deadline_policy import DeadlinePolicy
from ..services.exchange_service import ExchangeService
from ..services.directory_service import MenuDirectory
from ..services.order_service import OrderService
from ..services.report_service import ReportService


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_exchange_service(request: Request) -> ExchangeService:
    return request.app.state.exchange_service


def get_report_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_menu_directory(request: Request) -> MenuDirectory:
    return request.app.state.menu_directory


def get_deadline_policy(request: Request) -> DeadlinePolicy:
    return request.app.state.policy
