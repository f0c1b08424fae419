from typing import Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile

from ....core.container import Container
from ....schemas.common import success
from ....schemas.swap import SwapRole, SwapStatus
from ....schemas.user import Availability, UserUpdate
from ...deps import get_container, get_current_user
from ...serializers import present_ratings, present_swaps, user_out

router = APIRouter(tags=["users"])

@router.get("/")
async def get_users(
    search: Optional[str] = Query(None, description="Matches name, skills and location"),
    skill: Optional[str] = None,
    location: Optional[str] = None,
    availability: Optional[Availability] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    """Browse active, public profiles."""
    result = await container.users.list(
        search=search,
        skill=skill,
        location=location,
        availability=availability.value if availability else None,
        is_active=True,
        is_public=True,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success(result.map(user_out).to_dict("users"))

@router.put("/profile")
async def update_profile(
    changes: UserUpdate,
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    user = await container.users.update(current_user["id"], changes)
    return success({"user": user_out(user)}, message="Profile updated successfully")

@router.post("/profile/photo")
async def upload_profile_photo(
    profile_photo: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    path = await container.photos.save(profile_photo)
    user = await container.users.set_profile_photo(current_user["id"], path)
    return success({"user": user_out(user)}, message="Profile photo uploaded successfully")

@router.get("/me/swaps")
async def get_my_swap_history(
    status: Optional[SwapStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    result = await container.swaps.list_for_user(current_user["id"], SwapRole.ALL, status, page, limit)
    return success(result.with_items(await present_swaps(container, result.items)).to_dict("swaps"))

@router.get("/me/ratings")
async def get_my_ratings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    result = await container.ratings.list_for_user(current_user["id"], page, limit)
    ratings = await present_ratings(container, result.items, reveal_rater=False)
    return success(result.with_items(ratings).to_dict("ratings"))

@router.delete("/me/deactivate")
async def deactivate_account(
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    await container.users.deactivate(current_user["id"])
    return success(message="Account deactivated successfully")

@router.get("/{user_id}")
async def get_user_by_id(
    user_id: str = Path(...),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    profile = await container.users.get_profile(user_id, current_user["id"])
    return success({
        "user": user_out(profile["user"]),
        "recent_ratings": await present_ratings(container, profile["recent_ratings"], reveal_rater=False),
    })
