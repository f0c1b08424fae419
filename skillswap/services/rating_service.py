import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from ..core.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from ..repositories.ratings import RatingRepository
from ..schemas.rating import RatingCreate
from ..schemas.swap import SwapStatus
from ..utils.pagination import Page
from .swap_service import SwapService, is_participant
from .user_service import UserService

logger = logging.getLogger(__name__)

def rounded_average(total: Any, count: int) -> float:
    """``total / count`` rounded half-up to one decimal, 0.0 when there is nothing to average."""
    if not count:
        return 0.0
    mean = Decimal(str(total)) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

class RatingService:
    """
    Rating ledger. One rating per (swap, rater); after each new rating the
    rated user's summary is recomputed from every rating they have received.
    """

    def __init__(
        self,
        ratings: RatingRepository,
        swaps: SwapService,
        users: UserService,
        exclude_flagged: bool = False,
    ):
        self.ratings = ratings
        self.swaps = swaps
        self.users = users
        self.exclude_flagged = exclude_flagged

    async def submit(self, swap_id: str, rater_id: str, rating: RatingCreate) -> Dict[str, Any]:
        swap = await self.swaps.find(swap_id)
        if not is_participant(swap, rater_id):
            raise ForbiddenError("Access denied")
        if swap["status"] != SwapStatus.COMPLETED.value:
            raise InvalidStateError("Can only rate completed swaps")
        if await self.ratings.get_for_swap_and_rater(swap_id, rater_id):
            raise ConflictError("You have already rated this swap")

        rated_user_id = swap["recipient_id"] if swap["requester_id"] == rater_id else swap["requester_id"]
        created = await self.ratings.create({
            "swap_request_id": swap_id,
            "rated_by": rater_id,
            "rated_user": rated_user_id,
            "rating": rating.rating,
            "comment": rating.comment,
            "skill_rating": rating.skill_rating.model_dump() if rating.skill_rating else None,
            "would_recommend": rating.would_recommend,
            "is_anonymous": rating.is_anonymous,
            "flagged": False,
            "flag_reason": None,
        })
        logger.info(f"Rating {created['id']} on swap {swap_id}: {rater_id} -> {rated_user_id} ({rating.rating})")

        # Follow-up writes; the rating itself is already stored
        try:
            await self.swaps.mark_rated(swap, rater_id)
        except Exception:
            logger.exception(f"Failed to mark swap {swap_id} as rated by {rater_id}")
        try:
            await self.recompute_summary(rated_user_id)
        except Exception:
            logger.exception(f"Failed to recompute rating summary of {rated_user_id}")
        return created

    async def recompute_summary(self, user_id: str) -> Dict[str, Any]:
        filters: Dict[str, Any] = {"rated_user": user_id}
        if self.exclude_flagged:
            filters["flagged"] = False
        total, count = await self.ratings.totals("rating", filters)
        average = rounded_average(total, count)
        logger.debug(f"Rating summary of {user_id}: {average} over {count}")
        return await self.users.set_rating_summary(user_id, average, count)

    async def find(self, rating_id: str) -> Dict[str, Any]:
        rating = await self.ratings.get(rating_id)
        if not rating:
            raise NotFoundError("Rating not found")
        return rating

    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> Page[Dict[str, Any]]:
        return await self.ratings.page(page, limit, {"rated_user": user_id})

    async def recent_for_user(self, user_id: str, n: int = 5) -> List[Dict[str, Any]]:
        return await self.ratings.for_rated_user(user_id, limit=n)

    async def list_all(self, flagged: Optional[bool] = None, page: int = 1, limit: int = 10) -> Page[Dict[str, Any]]:
        filters = {"flagged": flagged} if flagged is not None else None
        return await self.ratings.page(page, limit, filters)

    async def set_flag(self, rating_id: str, flagged: bool, reason: Optional[str] = None) -> Dict[str, Any]:
        rating = await self.find(rating_id)
        updated = await self.ratings.update(rating_id, {"flagged": flagged, "flag_reason": reason if flagged else None})
        if not updated:
            raise NotFoundError("Rating not found")
        logger.info(f"Rating {rating_id} {'flagged' if flagged else 'unflagged'}")
        if self.exclude_flagged and bool(rating.get("flagged")) != flagged:
            await self.recompute_summary(rating["rated_user"])
        return updated
