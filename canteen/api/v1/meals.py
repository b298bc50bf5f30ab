"""
Menu routes
Read-only menu listing; the menu itself is maintained elsewhere.
"""

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import get_current_principal
from ...models.meal import MenuItem
from ...models.user import Principal
from ...schemas.common import ERROR_RESPONSES
from ...services.deadline_policy import DeadlinePolicy
from ...services.directory_service import MenuDirectory
from ..dependencies import get_deadline_policy, get_menu_directory

router = APIRouter(responses=ERROR_RESPONSES)

DEFAULT_WINDOW_DAYS = 14


@router.get("", response_model=List[MenuItem])
def list_meals(
    start: Optional[date] = Query(None, description="First date, defaults to today"),
    end: Optional[date] = Query(None, description="Last date, defaults to start + 14 days"),
    principal: Principal = Depends(get_current_principal),
    menu: MenuDirectory = Depends(get_menu_directory),
    policy: DeadlinePolicy = Depends(get_deadline_policy),
):
    """Menu items with their choice numbers"""
    start = start or policy.today()
    end = end or start + timedelta(days=DEFAULT_WINDOW_DAYS)
    return menu.list_range(start, end)
