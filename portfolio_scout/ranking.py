"""Selection of the images worth showing to an approver."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .models import ImageCandidate

RELEVANCE_THRESHOLD = 0.7
MAX_RESULTS = 20


def rank_candidates(
    scored: Sequence[ImageCandidate],
    *,
    threshold: float = RELEVANCE_THRESHOLD,
    limit: int = MAX_RESULTS,
) -> Tuple[List[ImageCandidate], int]:
    """Return (top candidates above ``threshold``, total candidates seen).

    ``sorted`` is stable, so equal scores keep their discovery order.
    """
    relevant = [
        image
        for image in scored
        if image.relevance_score is not None and image.relevance_score > threshold
    ]
    relevant = sorted(relevant, key=lambda image: image.relevance_score, reverse=True)
    return relevant[:limit], len(scored)
