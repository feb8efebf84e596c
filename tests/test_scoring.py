from portfolio_scout.models import CrawlStats, ImageCandidate
from portfolio_scout.scoring import (
    DEFAULT_TAXONOMY,
    build_taxonomy,
    category_keywords,
    score_candidates,
    score_image,
)


def make_image(**kwargs) -> ImageCandidate:
    kwargs.setdefault("src", "https://vendor.example/img/a.jpg")
    kwargs.setdefault("page_url", "https://vendor.example/")
    return ImageCandidate(**kwargs)


def test_mid_size_image_with_relevant_alt_scores_point_eight():
    image = make_image(width=500, height=400, alt="Beautiful wedding photography portrait")
    assert score_image(image, ["Photography"]) == 0.8


def test_size_alone_is_not_enough():
    image = make_image(width=500, height=400, alt="")
    assert score_image(image, ["Photography"]) == 0.3


def test_logo_is_clamped_to_zero():
    image = make_image(alt="logo")
    assert score_image(image, ["Catering"]) == 0.0


def test_company_logo_alt_stays_far_below_threshold():
    # alt length earns +0.2, "logo" takes 0.1 back
    image = make_image(alt="company logo")
    assert score_image(image, ["Catering"]) == 0.1


def test_large_image_gets_both_size_signals():
    image = make_image(width=1024, height=768)
    assert score_image(image, ["Photography"]) == 0.5


def test_unknown_dimensions_are_not_penalized():
    image = make_image(width=None, height=600, alt="Bouquet of roses on a table")
    assert score_image(image, ["florist"]) == 0.5


def test_title_and_context_signals():
    image = make_image(title="Our dinner menu", context="Seasonal catering for every event")
    # title length +0.1, title keyword +0.2, context keyword +0.2
    assert score_image(image, ["catering"]) == 0.5


def test_each_negative_term_subtracts_once():
    image = make_image(
        width=900,
        height=700,
        alt="Wedding photo gallery image",
        context="share on social media",
    )
    # 0.3 + 0.2 + 0.2 + 0.3 - 0.1 (social) - 0.1 (share)
    assert score_image(image, ["photography"]) == 0.8


def test_score_is_clamped_to_one():
    image = make_image(
        width=1600,
        height=1200,
        alt="Wedding portrait session",
        title="Bride and groom photo",
        context="Wedding photography packages",
    )
    assert score_image(image, ["photography"]) == 1.0


def test_any_of_several_categories_counts():
    image = make_image(alt="Live band on stage tonight")
    assert score_image(image, ["catering", "music"]) == 0.5
    assert score_image(image, ["catering"]) == 0.2


def test_unknown_category_contributes_no_keywords():
    image = make_image(alt="Wedding photography portrait")
    assert score_image(image, ["plumbing"]) == 0.2
    assert category_keywords(["plumbing"], DEFAULT_TAXONOMY) == ()


def test_category_lookup_is_case_insensitive():
    assert category_keywords(["PHOTOGRAPHY"], DEFAULT_TAXONOMY)[0] == "photo"


def test_custom_taxonomy():
    taxonomy = build_taxonomy({"Bakery": ["Cake", "pastry", "cake"]})
    assert taxonomy["bakery"] == ("cake", "pastry")
    image = make_image(alt="Three tier wedding cake")
    assert score_image(image, ["bakery"], taxonomy) == 0.5


def test_scoring_is_deterministic():
    image = make_image(width=640, height=480, alt="Floral arrangement", context="Flowers icon")
    scores = {score_image(image, ["florist", "venue"]) for _ in range(20)}
    assert len(scores) == 1


def test_score_candidates_sets_score_once():
    images = [make_image(src=f"https://vendor.example/{i}.jpg", alt="x" * i) for i in range(5)]
    scored = score_candidates(images, ["photography"])
    assert [image.src for image in scored] == [image.src for image in images]
    assert all(0.0 <= image.relevance_score <= 1.0 for image in scored)
    assert all(image.relevance_score is None for image in images)


def test_score_candidates_skips_unscorable_candidates():
    broken = make_image(src="https://vendor.example/broken.jpg", width="wide", height=400)
    good = make_image(src="https://vendor.example/good.jpg", width=500, height=400)
    stats = CrawlStats()
    scored = score_candidates([broken, good], ["photography"], stats=stats)
    assert [image.src for image in scored] == ["https://vendor.example/good.jpg"]
    assert stats.scoring_failures == 1
