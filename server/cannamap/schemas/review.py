from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReviewCreate(BaseModel):
    rating: int = Field(5, ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    location_id: int
    user_id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    is_moderated: bool


class VisitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    location_id: int
    visited_at: datetime
