import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..core.database import Between, Like
from ..core.exceptions import ValidationError
from ..repositories.ratings import RatingRepository
from ..repositories.swaps import SwapRepository
from ..repositories.users import UserRepository
from ..schemas.admin import PlatformMessage, ReportType
from ..schemas.swap import SwapStatus
from ..utils.dates import now_iso, parse_datetime
from ..utils.pagination import Page
from .notification_service import Notifier
from .rating_service import RatingService
from .user_service import UserService

logger = logging.getLogger(__name__)

RECENT_ITEMS = 5

def bucket_counts(
    rows: Iterable[Dict[str, Any]],
    key: Callable[[Dict[str, Any], datetime], Tuple],
    fields: Tuple[str, ...],
    limit: int,
    time_fields: int,
) -> List[Dict[str, Any]]:
    """
    Group rows by ``key(row, created_at)`` and count them.

    The last ``time_fields`` entries of each key are the calendar components;
    buckets are returned newest first and capped at ``limit``.
    """
    counts = Counter(key(row, parse_datetime(row["created_at"])) for row in rows)
    ordered = sorted(counts.items(), key=lambda item: item[0][-time_fields:], reverse=True)
    return [{**dict(zip(fields, bucket)), "count": count} for bucket, count in ordered[:limit]]

class AdminService:
    """Read-only reporting across users, swaps and ratings, plus moderation toggles."""

    def __init__(
        self,
        users: UserRepository,
        swaps: SwapRepository,
        ratings: RatingRepository,
        user_service: UserService,
        rating_service: RatingService,
        notifier: Notifier,
        bucket_limit: int = 12,
        daily_bucket_limit: int = 31,
    ):
        self.users = users
        self.swaps = swaps
        self.ratings = ratings
        self.user_service = user_service
        self.rating_service = rating_service
        self.notifier = notifier
        self.bucket_limit = bucket_limit
        self.daily_bucket_limit = daily_bucket_limit

    async def dashboard(self) -> Dict[str, Any]:
        rating_total, rating_count = await self.ratings.totals("rating")
        average_rating = round(float(rating_total) / rating_count, 2) if rating_count else 0

        stats = {
            "total_users": await self.users.count({"is_active": True}),
            "total_swaps": await self.swaps.count(),
            "completed_swaps": await self.swaps.count({"status": SwapStatus.COMPLETED.value}),
            "pending_swaps": await self.swaps.count({"status": SwapStatus.PENDING.value}),
            "total_ratings": rating_count,
            "average_rating": average_rating,
        }

        recent_users = [
            {"id": u["id"], "name": u["name"], "email": u["email"], "created_at": u["created_at"]}
            for u in await self.users.list({"is_active": True}, RECENT_ITEMS)
        ]
        recent_swaps = await self.swaps.list(None, RECENT_ITEMS)
        monthly_stats = bucket_counts(
            [swap async for swap in self.swaps.scan()],
            key=lambda row, at: (at.year, at.month),
            fields=("year", "month"),
            limit=self.bucket_limit,
            time_fields=2,
        )
        return {
            "stats": stats,
            "recent_users": recent_users,
            "recent_swaps": recent_swaps,
            "monthly_stats": monthly_stats,
        }

    async def list_users(
        self, search: Optional[str] = None, status: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Page[Dict[str, Any]]:
        filters = None
        if status:
            if status not in ("active", "inactive"):
                raise ValidationError("status must be 'active' or 'inactive'")
            filters = {"is_active": status == "active"}
        any_of = {"name": Like(search), "email": Like(search)} if search else None
        return await self.users.page(page, limit, filters, any_of=any_of)

    async def set_user_status(self, admin_id: str, user_id: str, is_active: bool) -> Dict[str, Any]:
        if admin_id == user_id:
            raise ValidationError("Cannot change your own status")
        await self.user_service.find(user_id)
        return await self.user_service.set_active(user_id, is_active)

    async def set_rating_flag(self, rating_id: str, flagged: bool, reason: Optional[str] = None) -> Dict[str, Any]:
        return await self.rating_service.set_flag(rating_id, flagged, reason)

    async def activity_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        report_type: ReportType = ReportType.ALL,
    ) -> Dict[str, Any]:
        start = parse_datetime(start_date) if start_date else None
        end = parse_datetime(end_date) if end_date else None
        if start and end and start > end:
            raise ValidationError("start_date must not be after end_date")

        window = {"created_at": Between(start, end)} if start or end else None

        async def rows(repository) -> List[Dict[str, Any]]:
            return [row async for row in repository.scan(window)]

        reports: Dict[str, Any] = {}
        if report_type in (ReportType.ALL, ReportType.USERS):
            reports["user_activity"] = bucket_counts(
                await rows(self.users),
                key=lambda row, at: (at.year, at.month, at.day),
                fields=("year", "month", "day"),
                limit=self.daily_bucket_limit,
                time_fields=3,
            )
        if report_type in (ReportType.ALL, ReportType.SWAPS):
            reports["swap_activity"] = bucket_counts(
                await rows(self.swaps),
                key=lambda row, at: (row["status"], at.year, at.month),
                fields=("status", "year", "month"),
                limit=self.bucket_limit,
                time_fields=2,
            )
        if report_type in (ReportType.ALL, ReportType.RATINGS):
            reports["rating_activity"] = bucket_counts(
                await rows(self.ratings),
                key=lambda row, at: (row["rating"], at.year, at.month),
                fields=("rating", "year", "month"),
                limit=self.bucket_limit,
                time_fields=2,
            )
        return reports

    async def send_platform_message(self, admin_id: str, message: PlatformMessage) -> Dict[str, Any]:
        recipients = [u["email"] async for u in self.users.scan({"is_active": True}) if u.get("email")]
        delivered = await self.notifier.broadcast(recipients, message.title, message.message)
        logger.info(f"Platform message '{message.title}' from {admin_id} delivered to {delivered}/{len(recipients)}")
        return {
            "title": message.title,
            "message": message.message,
            "type": message.type.value,
            "sent_at": now_iso(),
            "sent_by": admin_id,
            "recipients": len(recipients),
            "delivered": delivered,
        }
