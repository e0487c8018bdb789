from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src import config
from src.models.review import Pagination
from src.models.site import SiteSummary

SearchSort = Literal["newest", "rating", "reviewCount", "distance"]


class SearchFilters(BaseModel):
    q: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)  # miles
    min_rating: Optional[float] = None
    has_photos: bool = False
    sort: SearchSort = "newest"
    page: int = 1
    limit: int = config.SEARCH_DEFAULT_LIMIT

    @model_validator(mode="after")
    def clamp_pagination(self):
        self.page = max(1, self.page)
        self.limit = min(max(1, self.limit), config.SEARCH_MAX_LIMIT)
        return self

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None and self.radius is not None

    @property
    def text(self) -> Optional[str]:
        if self.q and self.q.strip():
            return self.q.strip()
        return None


class LocationFilter(BaseModel):
    lat: float
    lng: float
    radius: float


class AppliedFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text_search: Optional[str] = Field(default=None, alias="textSearch")
    location: Optional[LocationFilter] = None
    min_rating: Optional[float] = Field(default=None, alias="minRating")
    has_photos: bool = Field(default=False, alias="hasPhotos")
    sort: str


class SearchResponse(BaseModel):
    results: List[SiteSummary]
    pagination: Pagination
    filters: AppliedFilters
