"""Heuristic relevance scoring of image candidates against business categories.

The weight table is fixed: changing any value changes which images are
offered for approval.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ScoringFailure
from .models import CrawlStats, ImageCandidate

logger = logging.getLogger("portfolio_scout")

CategoryTaxonomy = Mapping[str, Tuple[str, ...]]

DEFAULT_TAXONOMY: CategoryTaxonomy = MappingProxyType(
    {
        "photography": ("photo", "photograph", "camera", "portrait", "wedding", "event"),
        "catering": ("food", "catering", "meal", "dinner", "lunch", "breakfast"),
        "music": ("music", "band", "dj", "concert", "performance", "sound"),
        "florist": ("flower", "floral", "bouquet", "arrangement", "plant"),
        "venue": ("venue", "hall", "room", "space", "facility", "location"),
        "transportation": ("car", "limo", "bus", "transport", "vehicle", "travel"),
    }
)

NEGATIVE_TERMS = ("logo", "icon", "banner", "advertisement", "social", "share")

MIN_AREA = 400 * 300
LARGE_AREA = 800 * 600
SIZE_WEIGHT = 0.3
LARGE_SIZE_WEIGHT = 0.2
ALT_MIN_LENGTH = 10
ALT_WEIGHT = 0.2
ALT_KEYWORD_WEIGHT = 0.3
TITLE_MIN_LENGTH = 5
TITLE_WEIGHT = 0.1
TITLE_KEYWORD_WEIGHT = 0.2
CONTEXT_KEYWORD_WEIGHT = 0.2
NEGATIVE_WEIGHT = 0.1


def build_taxonomy(mapping: Mapping[str, Sequence[str]]) -> CategoryTaxonomy:
    """Freeze a category -> keywords mapping; names and keywords are lowercased."""
    frozen: Dict[str, Tuple[str, ...]] = {}
    for name, keywords in mapping.items():
        ordered: List[str] = []
        for keyword in keywords:
            lowered = str(keyword).strip().lower()
            if lowered and lowered not in ordered:
                ordered.append(lowered)
        frozen[str(name).strip().lower()] = tuple(ordered)
    return MappingProxyType(frozen)


def load_taxonomy(path: Path) -> CategoryTaxonomy:
    """Read a JSON object of ``{"category": ["keyword", ...]}``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Taxonomy file {path} must contain a JSON object")
    return build_taxonomy(data)


def category_keywords(categories: Sequence[str], taxonomy: CategoryTaxonomy) -> Tuple[str, ...]:
    """Keywords of every known category, in category then keyword order."""
    keywords: List[str] = []
    for category in categories:
        for keyword in taxonomy.get((category or "").strip().lower(), ()):
            if keyword not in keywords:
                keywords.append(keyword)
    return tuple(keywords)


def text_matches(text: str, keywords: Sequence[str]) -> bool:
    if not text or not keywords:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def score_image(
    candidate: ImageCandidate,
    categories: Sequence[str],
    taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
) -> float:
    """Relevance of one candidate in [0, 1]. Pure and deterministic."""
    keywords = category_keywords(categories, taxonomy)
    score = 0.0

    if candidate.width and candidate.height:
        area = candidate.width * candidate.height
        if area >= MIN_AREA:
            score += SIZE_WEIGHT
        if area >= LARGE_AREA:
            score += LARGE_SIZE_WEIGHT

    if len(candidate.alt) > ALT_MIN_LENGTH:
        score += ALT_WEIGHT
        if text_matches(candidate.alt, keywords):
            score += ALT_KEYWORD_WEIGHT

    if len(candidate.title) > TITLE_MIN_LENGTH:
        score += TITLE_WEIGHT
        if text_matches(candidate.title, keywords):
            score += TITLE_KEYWORD_WEIGHT

    if text_matches(candidate.context, keywords):
        score += CONTEXT_KEYWORD_WEIGHT

    combined = f"{candidate.alt} {candidate.title} {candidate.context}".lower()
    for term in NEGATIVE_TERMS:
        if term in combined:
            score -= NEGATIVE_WEIGHT

    # Rounding keeps sums like 0.2 + 0.1 + 0.2 + 0.2 from landing just above 0.7.
    return round(max(0.0, min(1.0, score)), 4)


def score_candidates(
    candidates: Sequence[ImageCandidate],
    categories: Sequence[str],
    taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
    stats: Optional[CrawlStats] = None,
) -> List[ImageCandidate]:
    """Score every candidate; ones that fail to score are left out."""
    scored: List[ImageCandidate] = []
    for candidate in candidates:
        try:
            score = score_image(candidate, categories, taxonomy)
        except (TypeError, ValueError, AttributeError) as exc:
            failure = ScoringFailure(f"Could not score {candidate.src}: {exc}")
            logger.warning("%s: %s", failure.kind, failure)
            if stats is not None:
                stats.scoring_failures += 1
            continue
        scored.append(candidate.with_score(score))
    return scored
