"""Edit-distance string similarity used by the wishlist matcher"""
from rapidfuzz.distance import Levenshtein
from typing import Optional
import math


def normalize_text(value: Optional[str]) -> str:
    """Lowercase and trim; None becomes an empty string"""
    if not value:
        return ""
    return value.strip().lower()


def calculate_similarity(text1: Optional[str], text2: Optional[str]) -> float:
    """
    Similarity between two free-text strings
    Returns: 0.0 to 100.0
    """
    s1 = normalize_text(text1)
    s2 = normalize_text(text2)

    # Empty on either side never matches, even when both are empty
    if not s1 or not s2:
        return 0.0

    if s1 == s2:
        return 100.0

    if s1 in s2 or s2 in s1:
        return 90.0

    distance = Levenshtein.distance(s1, s2)
    max_length = max(len(s1), len(s2))
    similarity = (max_length - distance) / max_length * 100

    return max(0.0, similarity)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (78.5 -> 79)"""
    return int(math.floor(value + 0.5))
