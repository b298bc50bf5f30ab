"""
Order request/response schemas
"""

from pydantic import BaseModel, Field

from ..models.reservation import Reservation


class OrderCreateRequest(BaseModel):
    """Place an order"""
    meal_id: int = Field(..., description="Menu item ID")


class OrderChangeRequest(BaseModel):
    """Swap the meal reserved for the new meal's date"""
    meal_id: int = Field(..., description="New menu item ID")


class OrderCancelResponse(BaseModel):
    """Cancelled reservation"""
    reservation: Reservation = Field(..., description="The deleted record")
    status: str = Field("cancelled", description="Outcome")
