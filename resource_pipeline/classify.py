"""Per-candidate heuristics: resource type, listing/discussion/spam detection, authority tier."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from core import AuthorityTier, CandidateResource

from .urls import url_host


_PRACTICE_MARKERS = (
    "leetcode",
    "hackerrank",
    "codewars",
    "exercism",
    "codecademy.com/learn",
    "freecodecamp.org/learn",
    "sqlzoo",
)
_DOCUMENTATION_MARKERS = (
    "docs.",
    "developer.",
    "devdocs.",
    "wiki.",
    "reference.",
    "documentation",
    "developer.mozilla.org",
    "learn.microsoft.com",
)
_TUTORIAL_MARKERS = (
    "freecodecamp",
    "w3schools",
    "geeksforgeeks",
    "codecademy",
    "khanacademy",
    "realpython",
    "digitalocean.com/community",
    "theodinproject",
)

OFFICIAL_DOC_PATTERNS = (
    "python.org/doc",
    "docs.python.org",
    "react.dev",
    "vuejs.org",
    "angular.io/docs",
    "docs.docker.com",
    "kubernetes.io/docs",
    "go.dev/doc",
    "doc.rust-lang.org",
    "docs.oracle.com",
    "learn.microsoft.com",
    "developer.apple.com",
    "developer.mozilla.org",
)
MAJOR_VENDOR_DOMAINS = (
    "cloud.google.com",
    "aws.amazon.com",
    "azure.microsoft.com",
    "ibm.com",
    "nvidia.com",
    "oracle.com",
    "redhat.com",
)
UNIVERSITY_DOMAINS = (
    "stanford.edu",
    "mit.edu",
    "harvard.edu",
    "berkeley.edu",
    "cs50.harvard.edu",
    "ocw.mit.edu",
)
EDUCATION_DOMAINS = (
    "coursera.org",
    "edx.org",
    "udacity.com",
    "khanacademy.org",
    "freecodecamp.org",
)
RECOGNIZED_BLOGS = (
    "dev.to",
    "realpython.com",
    "digitalocean.com",
    "geeksforgeeks.org",
    "baeldung.com",
    "medium.com",
    "hashnode.dev",
    "smashingmagazine.com",
    "css-tricks.com",
    "web.dev",
)
COMMUNITY_DOMAINS = ("stackoverflow.com", "reddit.com", "quora.com")
DEPRIORITIZE_DOMAINS = ("tutorialspoint.com", "javatpoint.com")
GARBAGE_DOMAINS = ("linkfarm", "spamsite", "click-bait", "content-farm")
# Source label set on videos whose metadata came back from the video API.
VIDEO_METADATA_SOURCE = "YouTube"

YOUTUBE_TRUSTED_CHANNELS = (
    "freecodecamp.org",
    "freecodecamp",
    "3blue1brown",
    "cs50",
    "computerphile",
    "mit opencourseware",
    "khan academy",
    "ibm technology",
    "google cloud tech",
    "aws",
    "microsoft developer",
    "traversy media",
    "fireship",
    "web dev simplified",
    "tech with tim",
    "programming with mosh",
    "the coding train",
    "sentdex",
    "corey schafer",
    "techworld with nana",
    "networkchuck",
    "net ninja",
    "javascript mastery",
    "cs dojo",
    "academind",
    "ben awad",
    "theo",
)

_LISTING_SIGNALS = (
    "search",
    "results",
    "catalog",
    "directory",
    "collections",
    "category",
    "paths",
    "learning path",
    "certification path",
    "course list",
    "browse courses",
    "all courses",
)
_DISCUSSION_SIGNALS = (
    "what are the best",
    "best resources",
    "where to start",
    "how do i start",
    "any recommendations",
    "recommend me",
    "which course should",
    "is this worth it",
    "question",
    "discussion",
    "thread",
)
_EDUCATIONAL_SIGNALS = (
    "tutorial",
    "guide",
    "lesson",
    "course",
    "documentation",
    "docs",
    "walkthrough",
    "lecture",
    "reference",
    "syllabus",
)
_QUESTION_WORD_RE = re.compile(r"\b(what|how|which|where|why)\b", flags=re.IGNORECASE)
_COMMUNITY_PATH_RE = re.compile(r"/(r/|questions?|discussion|threads?|forum|community)\b")
_SPAM_TITLE_RE = re.compile(
    r"\b(top \d+ best|best \d+|you won't believe|clickbait|ai generated|content farm)\b",
    flags=re.IGNORECASE,
)
_LISTING_TITLE_RE = re.compile(r"\b(search results|course catalog|browse courses|learning paths?)\b", flags=re.IGNORECASE)
_SUSPICIOUS_TLDS = (".xyz", ".tk", ".ml", ".ga", ".cf")
_CERTIFICATION_RE = re.compile(
    r"\b(certification|cert|exam|associate|professional|practitioner|architect)\b",
    flags=re.IGNORECASE,
)


def _host_in(host: str, domains) -> bool:
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def detect_resource_type(url: str) -> str:
    """Type a web hit from its URL shape. Videos are typed at ingestion."""
    lower = str(url or "").lower()
    if any(marker in lower for marker in _PRACTICE_MARKERS):
        return "practice"
    if any(marker in lower for marker in _DOCUMENTATION_MARKERS):
        return "documentation"
    if any(marker in lower for marker in _TUTORIAL_MARKERS):
        return "tutorial"
    return "article"


def looks_like_listing_page(url: str, title: str = "", description: str = "") -> bool:
    text = f"{url} {title} {description}".lower()
    hits = sum(1 for signal in _LISTING_SIGNALS if signal in text)

    try:
        parsed = urlparse(str(url or ""))
        host = str(parsed.hostname or "").lower()
    except ValueError:
        return hits >= 2
    path = str(parsed.path or "").lower()
    query = str(parsed.query or "").lower()
    if "google." in host and path.startswith("/search"):
        return True
    if "youtube.com" in host and "/results" in path:
        return True
    if "/search" in path or "/catalog" in path:
        return True
    if "search" in query or "query=" in query or "q=" in query:
        return True
    return hits >= 2


def is_discussion_or_meta(url: str, title: str = "", description: str = "") -> bool:
    """Community Q&A threads and "where do I start" posts, unless clearly educational."""
    title_text = str(title or "")
    combined = f"{title_text} {description or ''}".lower()
    url_lower = str(url or "").lower()

    has_discussion = any(signal in combined for signal in _DISCUSSION_SIGNALS)
    has_educational = any(signal in combined for signal in _EDUCATIONAL_SIGNALS)
    question_title = title_text.strip().endswith("?") or bool(_QUESTION_WORD_RE.search(title_text))
    community_path = bool(_COMMUNITY_PATH_RE.search(url_lower))

    if community_path and has_discussion:
        return True
    if question_title and has_discussion and not has_educational:
        return True
    if "reddit.com" in url_lower and not has_educational:
        return True
    return False


def is_disqualified(title: str, url: str) -> bool:
    if _SPAM_TITLE_RE.search(str(title or "")):
        return True
    url_lower = str(url or "").lower()
    return any(domain in url_lower for domain in DEPRIORITIZE_DOMAINS)


def is_garbage(candidate: CandidateResource) -> bool:
    """Hard-reject predicate applied after scoring."""
    url_lower = candidate.url.lower()
    if any(marker in url_lower for marker in GARBAGE_DOMAINS):
        return True
    if looks_like_listing_page(candidate.url, candidate.title, candidate.description):
        return True
    if _LISTING_TITLE_RE.search(candidate.title):
        return True
    if is_discussion_or_meta(candidate.url, candidate.title, candidate.description):
        return True
    if url_host(candidate.url).endswith(_SUSPICIOUS_TLDS):
        return True
    if len(candidate.description or "") < 10 and not candidate.channel:
        return True
    return False


def classify_authority_tier(
    url: str,
    resource_type: str,
    channel: Optional[str] = None,
) -> Tuple[AuthorityTier, List[str]]:
    """Ordered rule cascade; the first matching rule decides the tier."""
    url_lower = str(url or "").lower()
    host = url_host(url)

    if any(pattern in url_lower for pattern in OFFICIAL_DOC_PATTERNS):
        return AuthorityTier.OFFICIAL_DOCS, ["official_docs"]
    if _host_in(host, MAJOR_VENDOR_DOMAINS):
        return AuthorityTier.VENDOR_DOCS, ["vendor_docs"]
    if _host_in(host, UNIVERSITY_DOMAINS):
        return AuthorityTier.UNIVERSITY_DIRECT, ["university"]
    if _host_in(host, EDUCATION_DOMAINS):
        return AuthorityTier.EDUCATION_DOMAIN, ["education_platform"]
    if host.endswith(".edu") or ".edu." in host:
        return AuthorityTier.EDUCATION_DOMAIN, ["edu_domain"]
    if resource_type == "video":
        channel_lower = str(channel or "").lower().strip()
        if channel_lower and any(known in channel_lower for known in YOUTUBE_TRUSTED_CHANNELS):
            return AuthorityTier.YOUTUBE_TRUSTED, ["youtube_channel_known"]
        return AuthorityTier.YOUTUBE_UNKNOWN, ["youtube_unknown"]
    if _host_in(host, RECOGNIZED_BLOGS):
        return AuthorityTier.BLOG, ["recognized_blog"]
    if _host_in(host, COMMUNITY_DOMAINS):
        return AuthorityTier.COMMUNITY, ["community_site"]
    return AuthorityTier.UNKNOWN, ["unknown_source"]


def estimate_article_minutes(snippet: str) -> int:
    words = len(str(snippet or "").split())
    if words > 80:
        return 40
    if words > 40:
        return 30
    return 20


def detect_certification_intent(text: str) -> bool:
    return bool(_CERTIFICATION_RE.search(str(text or "")))


def max_resources_for_module(hours: float) -> int:
    value = float(hours or 0)
    if value <= 1.5:
        return 3
    if value <= 3:
        return 4
    if value <= 5:
        return 5
    return 6
