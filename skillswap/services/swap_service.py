import logging
from typing import Any, Dict, Iterable, Optional

from ..core.exceptions import ForbiddenError, InvalidStateError, ConflictError, NotFoundError, ValidationError
from ..repositories.swaps import SwapRepository
from ..schemas.swap import SwapAccept, SwapCancel, SwapCreate, SwapReject, SwapRole, SwapStatus
from ..utils.dates import now_iso, to_iso
from ..utils.pagination import Page
from .notification_service import Notifier
from .user_service import UserService

logger = logging.getLogger(__name__)

# action -> (statuses it may start from, status it leads to)
TRANSITIONS = {
    "accept": ({SwapStatus.PENDING}, SwapStatus.ACCEPTED),
    "reject": ({SwapStatus.PENDING}, SwapStatus.REJECTED),
    "cancel": ({SwapStatus.PENDING, SwapStatus.ACCEPTED}, SwapStatus.CANCELLED),
    "complete": ({SwapStatus.ACCEPTED}, SwapStatus.COMPLETED),
}

def is_participant(swap: Dict[str, Any], user_id: str) -> bool:
    return user_id in (swap["requester_id"], swap["recipient_id"])

class SwapService:
    """
    Swap lifecycle: pending -> accepted -> completed, with rejected and
    cancelled as the other terminal states.

    Every transition checks the actor first, then the current status, and
    writes the new status conditionally on the status it read. A concurrent
    writer that changed the status in between makes the call fail with
    InvalidStateError before any side effect runs.
    """

    def __init__(self, swaps: SwapRepository, users: UserService, notifier: Notifier):
        self.swaps = swaps
        self.users = users
        self.notifier = notifier

    async def create(self, requester: Dict[str, Any], request: SwapCreate) -> Dict[str, Any]:
        requester_id = requester["id"]
        if request.recipient_id == requester_id:
            raise ValidationError("Cannot create swap request with yourself")

        recipient = await self.users.find(request.recipient_id)
        if not recipient.get("is_active", True):
            raise NotFoundError("Recipient not found")

        if await self.swaps.find_pending_between(requester_id, recipient["id"]):
            raise ConflictError("You already have a pending request with this user")

        swap = await self.swaps.create({
            "requester_id": requester_id,
            "recipient_id": recipient["id"],
            "skill_offered": request.skill_offered.model_dump(mode="json"),
            "skill_requested": request.skill_requested.model_dump(mode="json"),
            "status": SwapStatus.PENDING.value,
            "message": request.message,
            "response_message": None,
            "scheduled_date": to_iso(request.scheduled_date),
            "duration": request.duration,
            "meeting_type": request.meeting_type.value,
            "meeting_details": request.meeting_details,
            "cancel_reason": None,
            "is_rated_by_requester": False,
            "is_rated_by_recipient": False,
            "completed_at": None,
            "cancelled_at": None,
        })
        logger.info(f"Swap {swap['id']} requested by {requester_id} from {recipient['id']}")

        await self.notifier.swap_requested(
            recipient, requester, request.skill_offered.name, request.skill_requested.name
        )
        return swap

    async def find(self, swap_id: str) -> Dict[str, Any]:
        swap = await self.swaps.get(swap_id)
        if not swap:
            raise NotFoundError("Swap request not found")
        return swap

    async def get(self, swap_id: str, viewer_id: str) -> Dict[str, Any]:
        swap = await self.find(swap_id)
        if not is_participant(swap, viewer_id):
            raise ForbiddenError("Access denied")
        return swap

    async def _transition(
        self, swap: Dict[str, Any], action: str, changes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        allowed_from, target = TRANSITIONS[action]
        current = SwapStatus(swap["status"])
        if current not in allowed_from:
            raise InvalidStateError(f"Cannot {action} a swap request that is {current.value}")

        data = {**(changes or {}), "status": target.value}
        if target == SwapStatus.COMPLETED:
            data["completed_at"] = now_iso()
        elif target == SwapStatus.CANCELLED:
            data["cancelled_at"] = now_iso()

        updated = await self.swaps.update(swap["id"], data, expected={"status": current.value})
        if not updated:
            raise InvalidStateError(f"Swap request {swap['id']} changed status concurrently")
        logger.info(f"Swap {swap['id']}: {current.value} -> {target.value}")
        return updated

    async def accept(self, swap_id: str, actor_id: str, response: Optional[SwapAccept] = None) -> Dict[str, Any]:
        swap = await self.find(swap_id)
        if swap["recipient_id"] != actor_id:
            raise ForbiddenError("Only the recipient can accept this request")
        changes: Dict[str, Any] = {}
        if response:
            changes["response_message"] = response.response_message
            if response.scheduled_date:
                changes["scheduled_date"] = to_iso(response.scheduled_date)
            if response.meeting_details:
                changes["meeting_details"] = response.meeting_details
        return await self._transition(swap, "accept", changes)

    async def reject(self, swap_id: str, actor_id: str, response: Optional[SwapReject] = None) -> Dict[str, Any]:
        swap = await self.find(swap_id)
        if swap["recipient_id"] != actor_id:
            raise ForbiddenError("Only the recipient can reject this request")
        changes = {"response_message": response.response_message} if response else {}
        return await self._transition(swap, "reject", changes)

    async def cancel(self, swap_id: str, actor_id: str, request: Optional[SwapCancel] = None) -> Dict[str, Any]:
        swap = await self.find(swap_id)
        if not is_participant(swap, actor_id):
            raise ForbiddenError("Access denied")
        changes = {"cancel_reason": request.cancel_reason} if request else {}
        return await self._transition(swap, "cancel", changes)

    async def complete(self, swap_id: str, actor_id: str) -> Dict[str, Any]:
        swap = await self.find(swap_id)
        if not is_participant(swap, actor_id):
            raise ForbiddenError("Access denied")
        completed = await self._transition(swap, "complete")

        # Counters are a follow-up write; the completed status stays even if they fail
        for user_id in (completed["requester_id"], completed["recipient_id"]):
            try:
                await self.users.increment_swap_count(user_id)
            except Exception:
                logger.exception(f"Failed to increment swap count of {user_id} for swap {swap_id}")
        return completed

    async def mark_rated(self, swap: Dict[str, Any], rater_id: str) -> Dict[str, Any]:
        field = "is_rated_by_requester" if swap["requester_id"] == rater_id else "is_rated_by_recipient"
        updated = await self.swaps.update(swap["id"], {field: True})
        return updated or swap

    async def list_for_user(
        self,
        user_id: str,
        role: SwapRole = SwapRole.ALL,
        status: Optional[SwapStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Dict[str, Any]]:
        filters: Dict[str, Any] = {}
        any_of = None
        if role == SwapRole.SENT:
            filters["requester_id"] = user_id
        elif role == SwapRole.RECEIVED:
            filters["recipient_id"] = user_id
        else:
            any_of = {"requester_id": user_id, "recipient_id": user_id}
        if status:
            filters["status"] = status.value
        return await self.swaps.page(page, limit, filters, any_of=any_of)

    async def list_all(self, status: Optional[SwapStatus] = None, page: int = 1, limit: int = 10) -> Page[Dict[str, Any]]:
        filters = {"status": status.value} if status else None
        return await self.swaps.page(page, limit, filters)

    async def skills_for(self, swap_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Offered and requested skill of each existing swap, keyed by id."""
        swaps = await self.swaps.get_many(swap_ids)
        return {
            swap_id: {"skill_offered": swap["skill_offered"], "skill_requested": swap["skill_requested"]}
            for swap_id, swap in swaps.items()
        }
