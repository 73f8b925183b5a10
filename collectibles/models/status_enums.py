"""
Centralized status enums for matching entities
"""

from enum import Enum


class WishlistItemStatus(str, Enum):
    """Status of a wishlist item"""
    ACTIVE = "active"          # Still wanted, takes part in matching
    FOUND = "found"            # Owner acquired the item
    ARCHIVED = "archived"      # Hidden by the owner


class ListingStatus(str, Enum):
    """Status of a marketplace listing"""
    ACTIVE = "active"          # Visible and matchable
    SOLD = "sold"
    DELETED = "deleted"        # Soft delete


class MatchStatus(str, Enum):
    """Review state of a wishlist match"""
    NEW = "new"
    VIEWED = "viewed"
    DISMISSED = "dismissed"    # Terminal, row kept to suppress re-notification
    INTERESTED = "interested"  # Terminal


class MatchJobType(str, Enum):
    """Which side of the match a job was enqueued for"""
    MATCH_LISTING = "match_listing"
    MATCH_WISHLIST = "match_wishlist"


class MatchJobStatus(str, Enum):
    """Lifecycle of a match job"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"          # May be retried once retry_at passes
    DEAD = "dead"              # Retries exhausted


class NotificationType(str, Enum):
    NEW_MESSAGE = "new_message"
    LISTING_INQUIRY = "listing_inquiry"
    LISTING_SOLD = "listing_sold"
    WISHLIST_MATCH = "wishlist_match"


# Allowed user-driven match status changes
MATCH_STATUS_TRANSITIONS = {
    MatchStatus.NEW: {MatchStatus.VIEWED, MatchStatus.DISMISSED, MatchStatus.INTERESTED},
    MatchStatus.VIEWED: {MatchStatus.DISMISSED, MatchStatus.INTERESTED},
    MatchStatus.DISMISSED: set(),
    MatchStatus.INTERESTED: set(),
}
