from typing import Any, Dict, Optional

from .base import Repository
from ..schemas.swap import SwapStatus

class SwapRepository(Repository):
    table = "swap_requests"

    async def find_pending_between(self, requester_id: str, recipient_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one(
            self.table,
            {
                "requester_id": requester_id,
                "recipient_id": recipient_id,
                "status": SwapStatus.PENDING.value,
            },
        )
