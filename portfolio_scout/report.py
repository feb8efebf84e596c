"""Markdown review sheet for the admin approving scraped images."""

from __future__ import annotations

from typing import List

from .models import ImageCandidate, ScrapeResult


def _escape_cell(text: str) -> str:
    return (text or "").replace("|", "\\|").replace("\n", " ").strip()


def _describe_size(image: ImageCandidate) -> str:
    if image.width and image.height:
        return f"{image.width}x{image.height}"
    return "unknown"


def compose_image_section(index: int, image: ImageCandidate) -> str:
    label = image.alt or image.title or f"Image {index}"
    lines = [
        f"### {index}. {_escape_cell(label)}",
        "",
        f"![{_escape_cell(image.alt)}]({image.src})",
        "",
        "| Field | Value |",
        "| --- | --- |",
        f"| Score | {image.relevance_score:.2f} |",
        f"| Size | {_describe_size(image)} |",
        f"| Page | {image.page_url} |",
    ]
    if image.title:
        lines.append(f"| Title | {_escape_cell(image.title)} |")
    if image.context:
        lines.append(f"| Context | {_escape_cell(image.context)} |")
    return "\n".join(lines)


def compose_report(result: ScrapeResult) -> str:
    """Generate the report, front matter first."""
    front_matter_lines = ["---"]
    front_matter_lines.append(f"source_url: {result.website_url}")
    front_matter_lines.append(f"retrieved_at: {result.timestamp}")
    if result.categories:
        front_matter_lines.append("categories: [" + ", ".join(result.categories) + "]")
    front_matter_lines.append(f"success: {str(result.success).lower()}")
    front_matter_lines.append(f"pages_visited: {result.stats.pages_visited}")
    front_matter_lines.append(f"total_images: {result.total_images_found}")
    front_matter_lines.append(f"relevant_images: {len(result.relevant_images)}")
    if result.error:
        front_matter_lines.append(f"error_kind: {result.error_kind}")
    front_matter_lines.append("---\n")

    body: List[str] = [f"# Portfolio candidates for {result.website_url}", ""]
    if not result.success:
        body.append(f"Scrape failed ({result.error_kind}): {result.error}")
    elif not result.relevant_images:
        body.append(
            f"No relevant images among {result.total_images_found} found. "
            "Nothing to approve."
        )
    else:
        body.append(
            f"{len(result.relevant_images)} of {result.total_images_found} images "
            "passed the relevance threshold."
        )
        for index, image in enumerate(result.relevant_images, start=1):
            body.append("")
            body.append(compose_image_section(index, image))

    return "\n".join(front_matter_lines) + "\n".join(body).strip() + "\n"
