from typing import Any, Dict, List, Optional

from ..core.container import Container
from ..schemas.rating import RatingResponse
from ..schemas.swap import SwapResponse
from ..schemas.user import UserResponse

def user_out(user: Dict[str, Any]) -> Dict[str, Any]:
    return UserResponse.model_validate(user).model_dump(mode="json")

def swap_out(swap: Dict[str, Any], people: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
    people = people or {}
    return SwapResponse.model_validate({
        **swap,
        "requester": people.get(swap["requester_id"]),
        "recipient": people.get(swap["recipient_id"]),
    }).model_dump(mode="json")

def rating_out(
    rating: Dict[str, Any],
    raters: Optional[Dict[str, Dict[str, Any]]] = None,
    swaps: Optional[Dict[str, Dict[str, Any]]] = None,
    reveal_rater: bool = True,
) -> Dict[str, Any]:
    rater = (raters or {}).get(rating.get("rated_by"))
    if rater:
        rater = {key: rater[key] for key in ("id", "name", "profile_photo")}
    data = RatingResponse.model_validate({
        **rating,
        "rater": rater,
        "swap": (swaps or {}).get(rating["swap_request_id"]),
    }).model_dump(mode="json")
    if rating.get("is_anonymous") and not reveal_rater:
        data["rated_by"] = None
        data["rater"] = None
    return data

async def present_swaps(container: Container, swaps: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Swaps with requester and recipient summaries, one lookup for the whole list."""
    people = await container.users.summaries(
        user_id for swap in swaps for user_id in (swap["requester_id"], swap["recipient_id"])
    )
    return [swap_out(swap, people) for swap in swaps]

async def present_swap(container: Container, swap: Dict[str, Any]) -> Dict[str, Any]:
    return (await present_swaps(container, [swap]))[0]

async def present_ratings(
    container: Container, ratings: List[Dict[str, Any]], reveal_rater: bool = True
) -> List[Dict[str, Any]]:
    """Ratings with the rater's summary and the skills of the swap they rate."""
    raters = await container.users.summaries(r["rated_by"] for r in ratings)
    swaps = await container.swaps.skills_for(r["swap_request_id"] for r in ratings)
    return [rating_out(r, raters, swaps, reveal_rater) for r in ratings]

async def present_rating(container: Container, rating: Dict[str, Any], reveal_rater: bool = True) -> Dict[str, Any]:
    return (await present_ratings(container, [rating], reveal_rater))[0]
