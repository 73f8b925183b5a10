"""Weighted scoring of a wishlist item against a marketplace listing"""
from typing import Dict, Tuple
from collectibles.models import WishlistItem, MarketplaceListing
from collectibles.services.similarity import calculate_similarity, round_half_up

MATCH_THRESHOLD = 80

FIELD_WEIGHTS = {
    "name_score": 0.50,
    "category_score": 0.20,
    "manufacturer_score": 0.15,
    "pattern_score": 0.10,
    "description_score": 0.05,
}


class WishlistMatchScorer:
    """Scores how well a marketplace listing satisfies a wishlist item"""

    @staticmethod
    def calculate_field_scores(wishlist_item: WishlistItem, listing: MarketplaceListing) -> Dict[str, float]:
        """
        Unrounded per-field similarity
        Returns: {name_score, category_score, manufacturer_score, pattern_score, description_score}
        """
        name_score = calculate_similarity(wishlist_item.item_name, listing.title)

        category_score = 0.0
        if wishlist_item.category and listing.category:
            category_score = calculate_similarity(wishlist_item.category, listing.category)

        # Listings have no manufacturer/pattern columns, so look in title + description
        listing_text = listing.combined_text

        manufacturer_score = 0.0
        if wishlist_item.manufacturer:
            manufacturer_score = calculate_similarity(wishlist_item.manufacturer, listing_text)

        pattern_score = 0.0
        if wishlist_item.pattern:
            pattern_score = calculate_similarity(wishlist_item.pattern, listing_text)

        description_score = 0.0
        if wishlist_item.description and listing.description:
            description_score = calculate_similarity(wishlist_item.description, listing.description)

        return {
            "name_score": name_score,
            "category_score": category_score,
            "manufacturer_score": manufacturer_score,
            "pattern_score": pattern_score,
            "description_score": description_score,
        }

    @staticmethod
    def combine_scores(field_scores: Dict[str, float]) -> int:
        """Weighted total of per-field scores, rounded to 0-100"""
        weighted = sum(field_scores.get(field, 0.0) * weight for field, weight in FIELD_WEIGHTS.items())
        return round_half_up(weighted)

    @staticmethod
    def calculate_match_score(wishlist_item: WishlistItem, listing: MarketplaceListing) -> Tuple[int, Dict[str, int]]:
        """
        Calculate overall match score between a wishlist item and a listing
        Returns: (score, details_dict)
        """
        field_scores = WishlistMatchScorer.calculate_field_scores(wishlist_item, listing)
        score = WishlistMatchScorer.combine_scores(field_scores)
        details = {field: round_half_up(value) for field, value in field_scores.items()}
        return score, details

    @staticmethod
    def is_match(score: int) -> bool:
        """Scores at or above the threshold are persisted"""
        return score >= MATCH_THRESHOLD
