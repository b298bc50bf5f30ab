"""
Report row models
"""

from pydantic import BaseModel, Field


class DailyExportRow(BaseModel):
    """One reservation in the kitchen's daily list"""
    choice_number: int = Field(..., description="1-based rank of the meal on that date")
    meal_name: str
    first_name: str
    last_name: str
    personal_number: str = ""


class MonthlySummaryRow(BaseModel):
    """Meals a user is liable for in a closed month"""
    user_id: int
    personal_number: str = ""
    last_name: str
    first_name: str
    username: str
    meal_count: int = Field(0, ge=0)
