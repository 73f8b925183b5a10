from collectibles.models.wishlist_item import WishlistItem
from collectibles.models.marketplace_listing import MarketplaceListing
from collectibles.models.wishlist_match import WishlistMatch
from collectibles.models.user_notification import UserNotification
from collectibles.models.match_job import MatchJob

__all__ = [
    "WishlistItem",
    "MarketplaceListing",
    "WishlistMatch",
    "UserNotification",
    "MatchJob",
]
