"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import meals, orders, reports

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(meals.router, prefix="/meals", tags=["meals"])
