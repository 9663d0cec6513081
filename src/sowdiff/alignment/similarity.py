"""Token-set similarity on a 0-100 scale."""

import math


def tokenize(text: str) -> set[str]:
    return set(text.lower().split())


def token_set_similarity(a: str, b: str) -> int:
    """
    Jaccard overlap of lower-cased whitespace tokens, scaled to 0-100.

    Two empty strings are identical (100); an empty and a non-empty string
    share nothing (0). Halves round up.
    """
    left, right = tokenize(a), tokenize(b)
    if not left and not right:
        return 100
    if not left or not right:
        return 0
    ratio = len(left & right) / len(left | right)
    return int(math.floor(100 * ratio + 0.5))
