"""
Report routes
Daily kitchen export and monthly payroll summary.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ...core.security import get_current_principal
from ...models.report import MonthlySummaryRow
from ...models.user import Principal
from ...schemas.common import ERROR_RESPONSES
from ...services.report_service import ReportService
from ..dependencies import get_report_service

router = APIRouter(responses=ERROR_RESPONSES)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/daily")
def export_daily(
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    principal: Principal = Depends(get_current_principal),
    service: ReportService = Depends(get_report_service),
):
    """CSV of the day's reservations by choice number and surname"""
    content = service.export_daily_csv(principal, day)
    return _csv_response(content, f"orders_{day.isoformat()}.csv")


@router.get("/monthly", response_model=List[MonthlySummaryRow])
def monthly_summary(
    month: str = Query(..., description="YYYY-MM, must be a month that has ended"),
    principal: Principal = Depends(get_current_principal),
    service: ReportService = Depends(get_report_service),
):
    """Meal count per user"""
    return service.monthly_summary(principal, month)


@router.get("/monthly/export")
def export_monthly(
    month: str = Query(..., description="YYYY-MM, must be a month that has ended"),
    principal: Principal = Depends(get_current_principal),
    service: ReportService = Depends(get_report_service),
):
    """CSV of the meal count per user"""
    content = service.export_monthly_csv(principal, month)
    return _csv_response(content, f"meal_summary_{month}.csv")
