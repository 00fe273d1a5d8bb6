from __future__ import annotations

from resource_pipeline.urls import (
    ExclusionSet,
    extract_video_id,
    is_allowed_url,
    is_youtube_url,
    normalize_url,
    url_host,
)


def test_normalize_url_strips_tracking_and_www() -> None:
    url = "HTTPS://www.Example.com/guide/?utm_source=x&page=2&fbclid=abc#section"
    assert normalize_url(url) == "https://example.com/guide?page=2"


def test_normalize_url_sorts_allowlisted_query_keys() -> None:
    assert normalize_url("https://docs.example.com/a?version=3&lang=en") == "https://docs.example.com/a?lang=en&version=3"


def test_normalize_url_canonicalizes_youtube_variants() -> None:
    expected = "https://youtube.com/watch?v=dQw4w9WgXcQ"
    assert normalize_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s&list=PL1") == expected
    assert normalize_url("https://m.youtube.com/watch?v=dQw4w9WgXcQ") == expected
    assert normalize_url("https://youtu.be/dQw4w9WgXcQ?si=tracking") == expected


def test_normalize_url_unwraps_google_redirects() -> None:
    wrapped = "https://www.google.com/url?q=https://realpython.com/python-decorators/&sa=U"
    assert normalize_url(wrapped) == "https://realpython.com/python-decorators"
    amp = "https://www.google.com/amp/s/realpython.com/python-decorators/"
    assert normalize_url(amp) == "https://realpython.com/python-decorators"


def test_normalize_url_collapses_google_search_pages() -> None:
    assert normalize_url("https://www.google.com/search?q=react+hooks") == "https://google.com/search"


def test_normalize_url_never_raises_on_garbage() -> None:
    assert normalize_url("") == ""
    assert normalize_url("not a url&utm=1") == "not a url"


def test_extract_video_id_and_youtube_detection() -> None:
    assert extract_video_id("https://youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://example.com/watch?v=short") is None
    assert is_youtube_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
    assert not is_youtube_url("https://example.com/video")


def test_is_allowed_url_rejects_search_pages_and_blocked_domains() -> None:
    assert not is_allowed_url("https://www.google.com/search?q=python")
    assert not is_allowed_url("https://scholar.google.com/citations")
    assert not is_allowed_url("https://www.youtube.com/results?search_query=python")
    assert not is_allowed_url("https://www.bing.com/search?q=python")
    assert not is_allowed_url("https://duckduckgo.com/?q=python")
    assert not is_allowed_url("https://www.coursera.org/learn/python")
    assert not is_allowed_url("https://x.com/someone/status/1")
    assert not is_allowed_url("ftp://files.example.com/doc.pdf")


def test_is_allowed_url_matches_domains_by_host_suffix() -> None:
    assert is_allowed_url("https://www.dropbox.com/s/guide")
    assert is_allowed_url("https://realpython.com/python-decorators/")
    assert is_allowed_url("https://youtube.com/watch?v=dQw4w9WgXcQ")


def test_exclusion_set_matches_urls_and_wildcard_domains() -> None:
    exclusions = ExclusionSet.build(
        urls=["https://www.example.com/guide/?utm_source=x"],
        domains=["*.medium.com", "https://www.w3schools.com/"],
    )
    assert exclusions.contains("https://example.com/guide")
    assert exclusions.contains("https://towardsdatascience.medium.com/post")
    assert exclusions.contains("https://w3schools.com/python/")
    assert not exclusions.contains("https://realpython.com/python-decorators/")
    assert url_host("https://www.W3Schools.com/x") == "w3schools.com"
