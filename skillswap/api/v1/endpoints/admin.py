from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from ....core.container import Container
from ....schemas.admin import PlatformMessage, ReportType, UserStatusUpdate
from ....schemas.common import success
from ....schemas.rating import RatingFlagUpdate
from ....schemas.swap import SwapStatus
from ...deps import get_container, get_current_admin
from ...serializers import present_rating, present_ratings, present_swaps, user_out

router = APIRouter(tags=["admin"], dependencies=[Depends(get_current_admin)])

@router.get("/dashboard")
async def get_dashboard_stats(container: Container = Depends(get_container)):
    dashboard = await container.admin.dashboard()
    dashboard["recent_swaps"] = await present_swaps(container, dashboard["recent_swaps"])
    return success(dashboard)

@router.get("/users")
async def get_all_users(
    search: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    container: Container = Depends(get_container),
):
    result = await container.admin.list_users(search, status, page, limit)
    return success(result.map(user_out).to_dict("users"))

@router.put("/users/{user_id}/status")
async def toggle_user_status(
    update: UserStatusUpdate,
    user_id: str = Path(...),
    current_admin: dict = Depends(get_current_admin),
    container: Container = Depends(get_container),
):
    user = await container.admin.set_user_status(current_admin["id"], user_id, update.is_active)
    return success(
        {"user": user_out(user)},
        message=f"User {'activated' if update.is_active else 'deactivated'} successfully",
    )

@router.get("/swaps")
async def get_all_swap_requests(
    status: Optional[SwapStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    container: Container = Depends(get_container),
):
    result = await container.swaps.list_all(status, page, limit)
    return success(result.with_items(await present_swaps(container, result.items)).to_dict("swap_requests"))

@router.get("/ratings")
async def get_all_ratings(
    flagged: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    container: Container = Depends(get_container),
):
    result = await container.ratings.list_all(flagged, page, limit)
    return success(result.with_items(await present_ratings(container, result.items)).to_dict("ratings"))

@router.put("/ratings/{rating_id}/flag")
async def toggle_rating_flag(
    update: RatingFlagUpdate,
    rating_id: str = Path(...),
    container: Container = Depends(get_container),
):
    rating = await container.admin.set_rating_flag(rating_id, update.flagged, update.flag_reason)
    return success(
        {"rating": await present_rating(container, rating)},
        message=f"Rating {'flagged' if update.flagged else 'unflagged'} successfully",
    )

@router.get("/reports")
async def get_activity_reports(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    type: ReportType = ReportType.ALL,
    container: Container = Depends(get_container),
):
    reports = await container.admin.activity_report(start_date, end_date, type)
    return success({"reports": reports})

@router.post("/message")
async def send_platform_message(
    message: PlatformMessage,
    current_admin: dict = Depends(get_current_admin),
    container: Container = Depends(get_container),
):
    sent = await container.admin.send_platform_message(current_admin["id"], message)
    return success(sent, message="Platform message sent successfully")
