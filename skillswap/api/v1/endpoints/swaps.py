from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from ....core.container import Container
from ....schemas.common import success
from ....schemas.rating import RatingCreate
from ....schemas.swap import SwapAccept, SwapCancel, SwapCreate, SwapReject, SwapRole, SwapStatus
from ...deps import get_container, get_current_user
from ...serializers import present_rating, present_swap, present_swaps

router = APIRouter(tags=["swaps"])

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_swap_request(
    swap: SwapCreate,
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    """
    Create a new swap request.

    The current user offers ``skill_offered`` to the recipient in exchange
    for ``skill_requested``. Only one pending request per recipient is allowed.
    """
    created = await container.swaps.create(current_user, swap)
    return success({"swap_request": await present_swap(container, created)}, message="Swap request created successfully")

@router.get("/my")
async def get_my_swap_requests(
    type: SwapRole = Query(SwapRole.ALL, description="sent, received or all"),
    status: Optional[SwapStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    result = await container.swaps.list_for_user(current_user["id"], type, status, page, limit)
    return success(result.with_items(await present_swaps(container, result.items)).to_dict("swap_requests"))

@router.get("/{swap_id}")
async def get_swap_request(
    swap_id: str = Path(...),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    swap = await container.swaps.get(swap_id, current_user["id"])
    return success({"swap_request": await present_swap(container, swap)})

@router.put("/{swap_id}/accept")
async def accept_swap_request(
    swap_id: str = Path(...),
    response: Optional[SwapAccept] = Body(None),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    swap = await container.swaps.accept(swap_id, current_user["id"], response)
    return success({"swap_request": await present_swap(container, swap)}, message="Swap request accepted successfully")

@router.put("/{swap_id}/reject")
async def reject_swap_request(
    swap_id: str = Path(...),
    response: Optional[SwapReject] = Body(None),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    swap = await container.swaps.reject(swap_id, current_user["id"], response)
    return success({"swap_request": await present_swap(container, swap)}, message="Swap request rejected")

@router.put("/{swap_id}/cancel")
async def cancel_swap_request(
    swap_id: str = Path(...),
    request: Optional[SwapCancel] = Body(None),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    swap = await container.swaps.cancel(swap_id, current_user["id"], request)
    return success({"swap_request": await present_swap(container, swap)}, message="Swap request cancelled")

@router.put("/{swap_id}/complete")
async def complete_swap(
    swap_id: str = Path(...),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    swap = await container.swaps.complete(swap_id, current_user["id"])
    return success({"swap_request": await present_swap(container, swap)}, message="Swap marked as completed")

@router.post("/{swap_id}/rate", status_code=status.HTTP_201_CREATED)
async def rate_swap_partner(
    rating: RatingCreate,
    swap_id: str = Path(...),
    current_user: dict = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    """Rate the other participant of a completed swap. One rating per swap and rater."""
    created = await container.ratings.submit(swap_id, current_user["id"], rating)
    return success({"rating": await present_rating(container, created)}, message="Rating submitted successfully")
