from pydantic import BaseModel, Field, computed_field
from typing import Optional
from datetime import datetime

from .swap import SkillDescriptor
from .user import UserSummary

class SkillRating(BaseModel):
    quality: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    helpfulness: Optional[int] = Field(None, ge=1, le=5)

class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    skill_rating: Optional[SkillRating] = None
    would_recommend: bool = True
    is_anonymous: bool = False

class RatingFlagUpdate(BaseModel):
    flagged: bool
    flag_reason: Optional[str] = Field(None, max_length=500)

class SwapSkills(BaseModel):
    skill_offered: SkillDescriptor
    skill_requested: SkillDescriptor

class RatingResponse(BaseModel):
    id: str
    swap_request_id: str
    rated_by: Optional[str] = None
    rated_user: str
    rating: int
    comment: Optional[str] = None
    skill_rating: Optional[SkillRating] = None
    would_recommend: bool = True
    is_anonymous: bool = False
    flagged: bool = False
    flag_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    rater: Optional[UserSummary] = None
    swap: Optional[SwapSkills] = None

    @computed_field
    @property
    def skill_rating_average(self) -> float:
        if not self.skill_rating:
            return 0
        scores = [score for score in self.skill_rating.model_dump().values() if score]
        return sum(scores) / len(scores) if scores else 0
