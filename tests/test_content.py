from pathlib import Path

from bs4 import BeautifulSoup

from portfolio_scout.config import CrawlConfig
from portfolio_scout.content import (
    document_base,
    extract_images,
    extract_links,
    extract_page,
    is_supported_image,
    parse_dimension,
)

PAGE_URL = "https://vendor.example/"


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


def test_links_are_same_host_deduplicated_and_capped():
    extraction = extract_page(read_fixture("vendor_home.html"), PAGE_URL, CrawlConfig())
    assert extraction.links == [
        "https://vendor.example/portfolio",
        "https://vendor.example/about",
        "https://vendor.example/pricing",
        "https://vendor.example/weddings",
        "https://vendor.example/blog/",
    ]


def test_link_cap_is_configurable():
    soup = BeautifulSoup(read_fixture("vendor_home.html"), "html.parser")
    extraction = extract_links(soup, PAGE_URL, max_links=50)
    assert extraction.links[-2:] == [
        "https://vendor.example/contact",
        "https://vendor.example/faq",
    ]
    assert not any("instagram" in link for link in extraction.links)
    assert not any(link.startswith(("javascript:", "mailto:")) for link in extraction.links)


def test_images_are_resolved_and_filtered():
    extraction = extract_page(read_fixture("vendor_home.html"), PAGE_URL, CrawlConfig())
    sources = [image.src for image in extraction.images]
    assert sources == [
        "https://vendor.example/static/logo.png",
        "https://vendor.example/images/hero.jpg",
        "https://cdn.vendor.example/photos/engagement.webp?w=800",
        "data:image/png;base64,iVBORw0KGgo=",
        "https://vendor.example/images/diagram.svg",
    ]
    assert all(image.page_url == PAGE_URL for image in extraction.images)


def test_image_attributes_and_context():
    extraction = extract_page(read_fixture("vendor_home.html"), PAGE_URL, CrawlConfig())
    by_src = {image.src: image for image in extraction.images}

    hero = by_src["https://vendor.example/images/hero.jpg"]
    assert hero.alt == "Bride and groom at golden hour"
    assert hero.title == "Wedding portrait"
    assert (hero.width, hero.height) == (1200, 800)
    assert "wedding photography" in hero.context
    assert hero.relevance_score is None

    engagement = by_src["https://cdn.vendor.example/photos/engagement.webp?w=800"]
    assert (engagement.width, engagement.height) == (640, 480)
    assert engagement.context.startswith("Engagement sessions Book your session today")

    logo = by_src["https://vendor.example/static/logo.png"]
    assert logo.context == ""

    diagram = by_src["https://vendor.example/images/diagram.svg"]
    assert diagram.width is None and diagram.height is None
    assert diagram.alt == ""


def test_context_is_bounded():
    filler = " ".join(["catering"] * 100)
    html = f"<div><p>{filler}</p><img src='a.jpg' alt='x'><p>{filler}</p></div>"
    extraction = extract_page(html, PAGE_URL, CrawlConfig())
    assert len(extraction.images[0].context) <= 200


def test_scripts_do_not_leak_into_context():
    html = "<div><script>var photo = 1;</script><img src='a.png'><span>Menu</span></div>"
    extraction = extract_page(html, PAGE_URL, CrawlConfig())
    assert "photo" not in extraction.images[0].context


def test_unresolvable_references_are_dropped():
    html = (
        "<a href='http://[broken/page'>bad</a><a href='/ok'>ok</a>"
        "<img src='http://[broken/a.jpg'><img src='/fine.jpg'>"
    )
    extraction = extract_page(html, PAGE_URL, CrawlConfig())
    assert extraction.links == ["https://vendor.example/ok"]
    assert extraction.dropped_links == 1
    assert [image.src for image in extraction.images] == ["https://vendor.example/fine.jpg"]
    assert extraction.dropped_images == 1


def test_empty_document_yields_nothing():
    extraction = extract_page("", PAGE_URL, CrawlConfig())
    assert extraction.links == [] and extraction.images == []


def test_supported_image_allowlist():
    assert is_supported_image("https://a.example/x.JPEG")
    assert is_supported_image("https://a.example/x.gif?v=2")
    assert is_supported_image("data:image/webp;base64,AAAA")
    assert not is_supported_image("data:text/html;base64,AAAA")
    assert not is_supported_image("https://a.example/x.php")
    assert not is_supported_image("https://a.example/jpg/photo")


def test_parse_dimension():
    assert parse_dimension("800") == 800
    assert parse_dimension(" 640px") == 640
    assert parse_dimension("100%") == 100
    assert parse_dimension("auto") is None
    assert parse_dimension(None) is None


def test_extract_images_direct_call_keeps_first_duplicate():
    soup = BeautifulSoup("<img src='/a.jpg' alt='one'><img src='/a.jpg' alt='two'>", "html.parser")
    extraction = extract_images(soup, PAGE_URL)
    assert [image.alt for image in extraction.images] == ["one"]


def test_base_href_governs_relative_references():
    html = (
        "<html><head><base href='https://vendor.example/gallery/'></head><body>"
        "<a href='weddings'>Weddings</a><a href='/about'>About</a>"
        "<img src='cover.jpg' alt='cover'></body></html>"
    )
    extraction = extract_page(html, PAGE_URL, CrawlConfig())
    assert extraction.links == [
        "https://vendor.example/gallery/weddings",
        "https://vendor.example/about",
    ]
    assert [image.src for image in extraction.images] == ["https://vendor.example/gallery/cover.jpg"]
    assert extraction.images[0].page_url == PAGE_URL


def test_relative_base_href_and_unusable_base():
    soup = BeautifulSoup("<base href='/blog/'>", "html.parser")
    assert document_base(soup, "https://vendor.example/post") == "https://vendor.example/blog/"
    soup = BeautifulSoup("<base href='javascript:void(0)'>", "html.parser")
    assert document_base(soup, PAGE_URL) == PAGE_URL
    assert document_base(BeautifulSoup("<p>no base</p>", "html.parser"), PAGE_URL) == PAGE_URL


def test_links_are_checked_against_the_final_page_host():
    html = "<a href='https://www.vendor.example/portfolio'>Portfolio</a><a href='https://vendor.example/x'>x</a>"
    extraction = extract_page(html, "https://www.vendor.example/", CrawlConfig())
    assert extraction.links == ["https://www.vendor.example/portfolio"]
