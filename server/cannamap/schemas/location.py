"""Pydantic schemas for locations and their trust aggregate."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    address: str | None = Field(None, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    contact_phone: str | None = Field(None, max_length=50)
    contact_email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Please enter a name for the location"
            raise ValueError(msg)
        return v

    @field_validator("description", "address", "contact_phone", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class TrustAggregateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    igniter_votes: int
    imposter_votes: int
    total_votes: int
    trust_score: int


class LocationOut(TrustAggregateOut):
    id: int
    name: str
    description: str | None = None
    address: str | None = None
    latitude: float
    longitude: float
    contact_phone: str | None = None
    contact_email: str | None = None
    is_verified: bool
    created_at: datetime
    distance_km: float | None = None


class LocationDetail(LocationOut):
    review_count: int = 0
    average_rating: float | None = None
    visit_count: int = 0
