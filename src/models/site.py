from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Visibility = Literal["private", "unlisted", "public"]


class SiteCreate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=2000)
    visibility: Visibility


# Coordinates and the derived rating fields are not editable
class SiteUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    visibility: Optional[Visibility] = None


class Location(BaseModel):
    latitude: float
    longitude: float


class SiteSummary(BaseModel):
    """Public-safe projection of a campsite."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    location: Location
    photos: List[str] = []
    has_photos: bool = Field(default=False, alias="hasPhotos")
    average_rating: Optional[float] = Field(default=None, alias="averageRating")
    review_count: int = Field(default=0, alias="reviewCount")
    created_at: datetime = Field(alias="createdAt")
    distance: Optional[float] = None  # miles, search with a location only


class SiteDetail(SiteSummary):
    visibility: Visibility
    updated_at: datetime = Field(alias="updatedAt")
    owner_id: Optional[str] = Field(default=None, alias="ownerId")  # owner only
