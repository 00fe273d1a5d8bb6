from __future__ import annotations

from core import AuthorityTier, CandidateResource
from resource_pipeline.classify import (
    classify_authority_tier,
    detect_certification_intent,
    detect_resource_type,
    estimate_article_minutes,
    is_discussion_or_meta,
    is_disqualified,
    is_garbage,
    looks_like_listing_page,
    max_resources_for_module,
)


def _candidate(url: str, *, title: str = "Python decorators guide", description: str = "", channel=None) -> CandidateResource:
    return CandidateResource(
        title=title,
        url=url,
        type="article",
        description=description,
        channel=channel,
    )


def test_detect_resource_type_from_url_shape() -> None:
    assert detect_resource_type("https://leetcode.com/problems/two-sum") == "practice"
    assert detect_resource_type("https://docs.python.org/3/library/functools.html") == "documentation"
    assert detect_resource_type("https://www.freecodecamp.org/news/python-decorators") == "tutorial"
    assert detect_resource_type("https://blog.example.com/post") == "article"


def test_listing_pages_are_detected_by_path_query_and_signals() -> None:
    assert looks_like_listing_page("https://example.com/search?q=python")
    assert looks_like_listing_page("https://www.youtube.com/results?search_query=python")
    assert looks_like_listing_page("https://example.com/courses", "Browse courses", "Full catalog of every course")
    assert not looks_like_listing_page(
        "https://realpython.com/primer-on-python-decorators/",
        "Primer on Python Decorators",
        "Learn what decorators are and how to write your own.",
    )


def test_discussion_threads_are_flagged_unless_educational() -> None:
    assert is_discussion_or_meta(
        "https://www.reddit.com/r/learnpython/comments/abc/",
        "What are the best resources to learn Python?",
    )
    assert not is_discussion_or_meta(
        "https://realpython.com/primer-on-python-decorators/",
        "How to write a decorator: tutorial",
    )


def test_disqualified_titles_and_deprioritized_domains() -> None:
    assert is_disqualified("Top 10 Best Python Courses", "https://example.com/x")
    assert is_disqualified("Python decorators", "https://www.tutorialspoint.com/python/decorators.htm")
    assert not is_disqualified("Python decorators explained", "https://realpython.com/x")


def test_is_garbage_rejects_thin_and_suspicious_candidates() -> None:
    assert is_garbage(_candidate("https://example.com/a", description="short"))
    assert is_garbage(_candidate("https://free-python.xyz/decorators", description="Decorators in depth with examples"))
    assert is_garbage(_candidate("https://content-farm.example.com/a", description="Decorators in depth with examples"))
    assert not is_garbage(_candidate("https://example.com/a", description="short", channel="Corey Schafer"))
    assert not is_garbage(
        _candidate("https://realpython.com/primer-on-python-decorators/", description="Decorators in depth with examples")
    )


def test_authority_tier_cascade() -> None:
    cases = [
        ("https://docs.python.org/3/glossary.html", "documentation", None, AuthorityTier.OFFICIAL_DOCS),
        ("https://cloud.google.com/run/docs", "documentation", None, AuthorityTier.VENDOR_DOCS),
        ("https://ocw.mit.edu/courses/6-0001", "article", None, AuthorityTier.UNIVERSITY_DIRECT),
        ("https://www.edx.org/learn/python", "article", None, AuthorityTier.EDUCATION_DOMAIN),
        ("https://cs.someuniversity.edu/notes", "article", None, AuthorityTier.EDUCATION_DOMAIN),
        ("https://youtube.com/watch?v=dQw4w9WgXcQ", "video", "freeCodeCamp.org", AuthorityTier.YOUTUBE_TRUSTED),
        ("https://youtube.com/watch?v=dQw4w9WgXcQ", "video", "Random Uploads", AuthorityTier.YOUTUBE_UNKNOWN),
        ("https://dev.to/someone/decorators", "article", None, AuthorityTier.BLOG),
        ("https://stackoverflow.com/questions/739654", "article", None, AuthorityTier.COMMUNITY),
        ("https://www.educative.io/answers/decorators", "article", None, AuthorityTier.UNKNOWN),
    ]
    for url, kind, channel, expected in cases:
        tier, flags = classify_authority_tier(url, kind, channel)
        assert tier == expected, url
        assert flags


def test_max_resources_for_module_steps() -> None:
    assert [max_resources_for_module(h) for h in (1, 1.5, 2, 3, 4, 5, 8, 12)] == [3, 3, 4, 4, 5, 5, 6, 6]


def test_article_minutes_and_certification_intent() -> None:
    assert estimate_article_minutes("short snippet") == 20
    assert estimate_article_minutes(" ".join(["word"] * 50)) == 30
    assert estimate_article_minutes(" ".join(["word"] * 90)) == 40
    assert detect_certification_intent("AWS Solutions Architect Associate")
    assert not detect_certification_intent("Python decorators")
