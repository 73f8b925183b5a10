from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from collectibles.exceptions import MatchValidationError
from collectibles.models.status_enums import MatchJobType


class MatchListingRequest(BaseModel):
    mode: Literal["match_listing"]
    marketplace_listing_id: str = Field(alias="marketplaceListingId", min_length=1)

    class Config:
        extra = "forbid"
        populate_by_name = True


class MatchWishlistRequest(BaseModel):
    mode: Literal["match_wishlist"]
    wishlist_item_id: str = Field(alias="wishlistItemId", min_length=1)

    class Config:
        extra = "forbid"
        populate_by_name = True


MatchRequest = Annotated[Union[MatchListingRequest, MatchWishlistRequest], Field(discriminator="mode")]

_match_request_adapter = TypeAdapter(MatchRequest)


def parse_match_request(payload: Any) -> Union[MatchListingRequest, MatchWishlistRequest]:
    """Validate a raw matcher payload into one of the two request variants"""
    if not isinstance(payload, dict):
        raise MatchValidationError("Request body must be a JSON object")

    if payload.get("mode") not in ("match_listing", "match_wishlist"):
        raise MatchValidationError("Invalid mode")

    try:
        return _match_request_adapter.validate_python(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise MatchValidationError(f"Invalid {payload['mode']} request: {problems}")


def build_match_request(job_type: str, reference_id: str) -> Dict[str, str]:
    """Wire payload for the matcher endpoint from a queued job"""
    if job_type == MatchJobType.MATCH_LISTING.value:
        return {"mode": "match_listing", "marketplaceListingId": reference_id}
    if job_type == MatchJobType.MATCH_WISHLIST.value:
        return {"mode": "match_wishlist", "wishlistItemId": reference_id}
    raise MatchValidationError(f"Unknown job type '{job_type}'")


class MatchDetails(BaseModel):
    name_score: int
    category_score: int
    manufacturer_score: int
    pattern_score: int
    description_score: int


class MatchResponse(BaseModel):
    id: str
    wishlist_item_id: str
    marketplace_listing_id: str
    match_score: int
    match_details: Optional[MatchDetails]
    match_status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MatchStatusUpdate(BaseModel):
    match_status: str


class MatchCountsResponse(BaseModel):
    counts: Dict[str, int]


class NewMatchesCountResponse(BaseModel):
    new_matches_count: int


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    related_id: Optional[str]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
