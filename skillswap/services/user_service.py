import logging
from typing import Any, Dict, Iterable, Optional

from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ..core.database import Contains, Like
from ..core.security import PasswordHasher
from ..repositories.ratings import RatingRepository
from ..repositories.users import UserRepository
from ..schemas.user import Role, UserCreate, UserUpdate
from ..utils.dates import now_iso
from ..utils.pagination import Page

logger = logging.getLogger(__name__)

# sort_by value -> column it orders on
SORTABLE_FIELDS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "name": "name",
    "swap_count": "swap_count",
    "last_active": "last_active",
    "rating": "rating->average",
}
# Profile fields a user may set back to null
CLEARABLE_FIELDS = {"location", "bio"}
RECENT_RATINGS = 5

def summarize(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user["id"],
        "name": user.get("name"),
        "profile_photo": user.get("profile_photo"),
        "rating": user.get("rating"),
    }

class UserService:
    """User directory: profiles, skill lists, swap counters and rating summaries."""

    def __init__(self, users: UserRepository, ratings: RatingRepository, hasher: PasswordHasher):
        self.users = users
        self.ratings = ratings
        self.hasher = hasher

    async def create(self, profile: UserCreate, role: Role = Role.USER) -> Dict[str, Any]:
        email = profile.email.lower()
        if not profile.name or not email:
            raise ValidationError("Name and email are required")
        if await self.users.get_by_email(email):
            raise ConflictError("Email already registered")

        user = await self.users.create({
            "name": profile.name,
            "email": email,
            "password_hash": self.hasher.hash(profile.password),
            "location": profile.location,
            "bio": None,
            "profile_photo": None,
            "role": role.value,
            "is_active": True,
            "is_public": True,
            "skills_offered": [],
            "skills_wanted": [],
            "availability": [],
            "rating": {"average": 0, "count": 0},
            "swap_count": 0,
            "last_active": now_iso(),
        })
        logger.info(f"Registered user {user['id']} ({role.value})")
        return user

    async def find(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        user = await self.users.get_by_email(email)
        if not user or not self.hasher.verify(password, user["password_hash"]):
            raise AuthenticationError("Invalid email or password")
        if not user.get("is_active", True):
            raise AuthenticationError("Account is deactivated")
        return await self.users.update(user["id"], {"last_active": now_iso()}) or user

    async def update(self, user_id: str, changes: UserUpdate) -> Dict[str, Any]:
        data = {
            key: value
            for key, value in changes.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        if not data:
            return await self.find(user_id)
        user = await self.users.update(user_id, data)
        if not user:
            raise NotFoundError("User not found")
        logger.info(f"Updated profile of user {user_id}: {sorted(data)}")
        return user

    async def list(
        self,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        location: Optional[str] = None,
        availability: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_public: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[Dict[str, Any]]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort users by '{sort_by}'")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'")

        filters: Dict[str, Any] = {}
        if is_active is not None:
            filters["is_active"] = is_active
        if is_public is not None:
            filters["is_public"] = is_public
        if skill:
            filters["skill_names"] = Like(skill)
        if location:
            filters["location"] = Like(location)
        if availability:
            filters["availability"] = Contains(availability)

        any_of = None
        if search:
            any_of = {"name": Like(search), "location": Like(search), "skill_names": Like(search)}

        return await self.users.page(page, limit, filters, {SORTABLE_FIELDS[sort_by]: sort_order}, any_of)

    async def summaries(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Id, name, photo and rating of each existing user, keyed by id."""
        users = await self.users.get_many(user_ids)
        return {user_id: summarize(user) for user_id, user in users.items()}

    async def get_profile(self, user_id: str, viewer_id: str) -> Dict[str, Any]:
        user = await self.find(user_id)
        if not user.get("is_public", True) and user["id"] != viewer_id:
            raise ForbiddenError("This profile is private")
        recent = await self.ratings.for_rated_user(user_id, limit=RECENT_RATINGS)
        return {"user": user, "recent_ratings": recent}

    async def set_active(self, user_id: str, is_active: bool) -> Dict[str, Any]:
        user = await self.users.update(user_id, {"is_active": is_active})
        if not user:
            raise NotFoundError("User not found")
        logger.info(f"User {user_id} {'activated' if is_active else 'deactivated'}")
        return user

    async def deactivate(self, user_id: str) -> Dict[str, Any]:
        return await self.set_active(user_id, False)

    async def set_profile_photo(self, user_id: str, path: str) -> Dict[str, Any]:
        user = await self.users.update(user_id, {"profile_photo": path})
        if not user:
            raise NotFoundError("User not found")
        return user

    async def increment_swap_count(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.increment(user_id, "swap_count", 1)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def set_rating_summary(self, user_id: str, average: float, count: int) -> Dict[str, Any]:
        user = await self.users.update(user_id, {"rating": {"average": average, "count": count}})
        if not user:
            raise NotFoundError("User not found")
        return user
