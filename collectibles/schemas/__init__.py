from collectibles.schemas.match_schema import (
    MatchListingRequest,
    MatchWishlistRequest,
    MatchRequest,
    MatchDetails,
    MatchResponse,
    MatchStatusUpdate,
    MatchCountsResponse,
    NewMatchesCountResponse,
    NotificationResponse,
    NotificationListResponse,
    parse_match_request,
    build_match_request,
)
from collectibles.schemas.job_schema import MatchJobCreate, MatchJobResponse

__all__ = [
    "MatchListingRequest",
    "MatchWishlistRequest",
    "MatchRequest",
    "MatchDetails",
    "MatchResponse",
    "MatchStatusUpdate",
    "MatchCountsResponse",
    "NewMatchesCountResponse",
    "NotificationResponse",
    "NotificationListResponse",
    "parse_match_request",
    "build_match_request",
    "MatchJobCreate",
    "MatchJobResponse",
]
