"""
Order routes
Reservation lifecycle and exchange endpoints.

Handlers are plain functions so they run in the threadpool; the lifecycle
operations may wait on the database write lock.
"""

from typing import List

from fastapi import APIRouter, Depends

from ...core.security import get_current_principal
from ...models.reservation import HistoryEntry, Reservation, ReservationWithMeal
from ...models.user import Principal
from ...schemas.common import ERROR_RESPONSES
from ...schemas.order import OrderCancelResponse, OrderChangeRequest, OrderCreateRequest
from ...services.exchange_service import ExchangeService
from ...services.order_service import OrderService
from ..dependencies import get_exchange_service, get_order_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("", response_model=Reservation, status_code=201)
def place_order(
    req: OrderCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Reserve a meal"""
    return service.place(principal, req.meal_id)


@router.post("/change", response_model=Reservation)
def change_order(
    req: OrderChangeRequest,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Swap the reserved meal for another one on the same date"""
    return service.change(principal, req.meal_id)


@router.get("/my", response_model=List[ReservationWithMeal])
def my_orders(
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Own reservations for the current and previous month"""
    return service.list_my_reservations(principal)


@router.get("/exchange", response_model=List[ReservationWithMeal])
def exchange_pool(
    principal: Principal = Depends(get_current_principal),
    service: ExchangeService = Depends(get_exchange_service),
):
    """Meals released by other users"""
    return service.list_available(principal)


@router.get("/history/{user_id}", response_model=List[HistoryEntry])
def user_history(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Admin: a user's full history with choice numbers"""
    return service.user_history(principal, user_id)


@router.delete("/{reservation_id}", response_model=OrderCancelResponse)
def cancel_order(
    reservation_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Cancel before the ordering deadline"""
    reservation = service.cancel(principal, reservation_id)
    return OrderCancelResponse(reservation=reservation)


@router.post("/{reservation_id}/exchange", response_model=Reservation)
def release_order(
    reservation_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Put the meal in the exchange"""
    return service.release(principal, reservation_id)


@router.post("/{reservation_id}/claim", response_model=Reservation)
def claim_order(
    reservation_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Take over a meal from the exchange"""
    return service.claim(principal, reservation_id)
