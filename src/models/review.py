from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# rating stays untyped so range and integer checks raise InvalidRating
class ReviewCreate(BaseModel):
    rating: Any = None
    comment: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Any = None
    comment: Optional[str] = None


class FlagCreate(BaseModel):
    reason: Optional[str] = None


class ReviewAuthor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(alias="displayName")
    email: Optional[str] = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    user: Optional[ReviewAuthor] = None
    is_anonymous: bool = Field(alias="isAnonymous")


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class ReviewPage(BaseModel):
    reviews: List[ReviewOut]
    pagination: Pagination


class ReviewWriteResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    review_id: str = Field(alias="reviewId")


class FlagResult(BaseModel):
    message: str
    hidden: bool
