from portfolio_scout.models import ImageCandidate
from portfolio_scout.ranking import rank_candidates


def scored(name: str, score: float) -> ImageCandidate:
    return ImageCandidate(
        src=f"https://vendor.example/{name}.jpg",
        page_url="https://vendor.example/",
        relevance_score=score,
    )


def test_only_scores_strictly_above_threshold_survive():
    images = [scored("a", 0.7), scored("b", 0.71), scored("c", 0.3), scored("d", 1.0)]
    ranked, total = rank_candidates(images)
    assert [image.src.rsplit("/", 1)[1] for image in ranked] == ["d.jpg", "b.jpg"]
    assert total == 4


def test_ties_keep_discovery_order():
    images = [scored("first", 0.8), scored("top", 0.9), scored("second", 0.8), scored("third", 0.8)]
    ranked, _ = rank_candidates(images)
    assert [image.src.rsplit("/", 1)[1] for image in ranked] == [
        "top.jpg",
        "first.jpg",
        "second.jpg",
        "third.jpg",
    ]


def test_output_is_truncated_and_sorted():
    images = [scored(f"img{i}", 0.71 + (i % 7) * 0.04) for i in range(40)]
    ranked, total = rank_candidates(images)
    assert total == 40
    assert len(ranked) == 20
    scores = [image.relevance_score for image in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(score > 0.7 for score in scores)


def test_unscored_candidates_are_ignored():
    unscored = ImageCandidate(src="https://vendor.example/x.jpg", page_url="https://vendor.example/")
    ranked, total = rank_candidates([unscored, scored("y", 0.9)])
    assert len(ranked) == 1
    assert total == 2


def test_empty_input():
    assert rank_candidates([]) == ([], 0)
