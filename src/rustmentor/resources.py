"""Additional learning links attached to a module after parsing."""

from __future__ import annotations

from urllib.parse import quote_plus

from .models import AdditionalResources, ResourceLink
from .settings import ResourceToggles


def _search_terms(topic: str) -> str:
    """Prefer the section part of ``"Chapter: Section"`` topics."""
    _, _, section = topic.partition(":")
    return (section or topic).strip()


def build_resources(topic: str, toggles: ResourceToggles) -> AdditionalResources | None:
    """Build links for ``topic``; None when every source is switched off or the topic is blank."""
    terms = _search_terms(topic)
    if not terms:
        return None
    query = quote_plus(terms)
    chapter = topic.partition(":")[0].strip()

    resources = AdditionalResources(
        official_docs=[
            ResourceLink(
                title="Rust Standard Library",
                url=f"https://doc.rust-lang.org/std/?search={query}",
                description=f"API documentation matching '{terms}'.",
            ),
            ResourceLink(
                title="The Rust Programming Language",
                url="https://doc.rust-lang.org/book/",
                description="The official book, for the full chapter around this topic.",
            ),
        ]
        if toggles.show_official_docs
        else [],
        community_resources=[
            ResourceLink(
                title="Rust Users Forum",
                url=f"https://users.rust-lang.org/search?q={query}",
                description="Community discussions and answered questions.",
            )
        ]
        if toggles.show_community_resources
        else [],
        crates_io=[
            ResourceLink(
                title=f"crates.io: {chapter or terms}",
                url=f"https://crates.io/search?q={quote_plus(chapter or terms)}",
                description="Published crates related to this topic.",
            )
        ]
        if toggles.show_crates_io
        else [],
        github_repos=[
            ResourceLink(
                title="GitHub repositories",
                url=f"https://github.com/search?q={query}+language%3ARust&type=repositories",
                description="Open-source Rust projects using this feature.",
            )
        ]
        if toggles.show_github_repos
        else [],
    )
    return None if resources.is_empty() else resources
