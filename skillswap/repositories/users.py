from typing import Any, Dict, Iterable, Optional

from .base import Repository

def skill_index(*skill_lists: Optional[Iterable[Dict[str, Any]]]) -> str:
    """Lower-cased skill names, one per line, for substring search."""
    return "\n".join(
        (skill.get("name") or "").lower() for skills in skill_lists for skill in (skills or [])
    )

class UserRepository(Repository):
    table = "users"

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = {**data, "skill_names": skill_index(data.get("skills_offered"), data.get("skills_wanted"))}
        return await super().create(data)

    async def update(
        self, row_id: str, data: Dict[str, Any], expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        if "skills_offered" in data or "skills_wanted" in data:
            current = await self.get(row_id) or {}
            offered = data.get("skills_offered", current.get("skills_offered"))
            wanted = data.get("skills_wanted", current.get("skills_wanted"))
            data = {**data, "skill_names": skill_index(offered, wanted)}
        return await super().update(row_id, data, expected)

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one(self.table, {"email": email.lower()})

    async def increment(self, user_id: str, field: str, amount: int = 1) -> Optional[Dict[str, Any]]:
        return await self.db.increment(self.table, user_id, field, amount)
