from typing import Any, Dict, List, Optional

from .base import Repository

class RatingRepository(Repository):
    table = "ratings"

    async def get_for_swap_and_rater(self, swap_id: str, rater_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one(self.table, {"swap_request_id": swap_id, "rated_by": rater_id})

    async def for_rated_user(self, user_id: str, limit: int) -> List[Dict[str, Any]]:
        return await self.list({"rated_user": user_id}, limit)
