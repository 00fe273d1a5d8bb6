"""URL canonicalization, allow-gate and exclusion matching for resource candidates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional
from urllib.parse import parse_qs, parse_qsl, urlencode, urlparse


_QUERY_ALLOWLIST = {"id", "p", "page", "v", "lang", "version", "tab"}
_DISALLOWED_DOMAINS = (
    "coursera.org",
    "coursera.com",
    "tiktok.com",
    "instagram.com",
    "facebook.com",
    "x.com",
    "twitter.com",
)
_YOUTUBE_HOSTS = {"youtube.com", "m.youtube.com", "music.youtube.com"}
_REDIRECT_PATHS = {"/url", "/interstitial"}
_REDIRECT_PARAMS = ("q", "url", "sa")
_AMP_PREFIX = "/amp/s/"
_MAX_UNWRAP_DEPTH = 3

_BARE_GOOGLE_RE = re.compile(r"^(?:m\.)?google\.[a-z.]+$")
_GOOGLE_SEARCH_SUBDOMAIN_RE = re.compile(r"^(?:scholar|books|cse|news)\.google\.")
_VIDEO_ID_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([\w-]{11})")


def _strip_www(host: str) -> str:
    value = str(host or "").strip().lower()
    return value[4:] if value.startswith("www.") else value


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def _is_google_host(host: str) -> bool:
    return "google." in host


def _canonical_youtube(video_id: str) -> str:
    return f"https://youtube.com/watch?v={video_id}"


def _normalize(raw: str, depth: int) -> str:
    parsed = urlparse(raw)
    scheme = str(parsed.scheme or "").lower()
    host = _strip_www(parsed.hostname or "")
    if not scheme or not host:
        raise ValueError(f"not an absolute url: {raw!r}")
    port = parsed.port
    path = re.sub(r"/{2,}", "/", str(parsed.path or "")) or "/"
    params = parse_qs(str(parsed.query or ""))

    if _is_google_host(host) and depth < _MAX_UNWRAP_DEPTH:
        if path in _REDIRECT_PATHS:
            for key in _REDIRECT_PARAMS:
                target = str((params.get(key) or [""])[0]).strip()
                if target.startswith(("http://", "https://")):
                    return _normalize(target, depth + 1)
        if path.startswith(_AMP_PREFIX) and len(path) > len(_AMP_PREFIX):
            return _normalize("https://" + path[len(_AMP_PREFIX):], depth + 1)

    if host in _YOUTUBE_HOSTS and path == "/watch":
        video_id = str((params.get("v") or [""])[0]).strip()
        if video_id:
            return _canonical_youtube(video_id)
    if host == "youtu.be":
        video_id = path.strip("/").split("/")[0]
        if video_id:
            return _canonical_youtube(video_id)

    if _is_google_host(host) and (path == "/search" or _GOOGLE_SEARCH_SUBDOMAIN_RE.match(host)):
        return f"https://{host}/search"

    if len(path) > 1:
        path = path.rstrip("/") or "/"

    netloc = host
    if port and port not in (80, 443):
        netloc = f"{host}:{port}"

    query_pairs = sorted(
        (str(key).strip().lower(), str(val).strip())
        for key, val in parse_qsl(str(parsed.query or ""), keep_blank_values=False)
        if str(key).strip().lower() in _QUERY_ALLOWLIST
    )
    query = urlencode(query_pairs)
    normalized = f"{scheme}://{netloc}{path}"
    return f"{normalized}?{query}" if query else normalized


def normalize_url(url: str) -> str:
    """Canonical dedup key for a resource URL. Never raises."""
    raw = str(url or "").strip()
    if not raw:
        return ""
    try:
        return _normalize(raw, 0)
    except ValueError:
        return raw.split("&")[0]


def url_host(url: str) -> str:
    try:
        return _strip_www(urlparse(str(url or "").strip()).hostname or "")
    except ValueError:
        return ""


def extract_video_id(url: str) -> Optional[str]:
    match = _VIDEO_ID_RE.search(str(url or ""))
    return match.group(1) if match else None


def is_youtube_url(url: str) -> bool:
    host = url_host(url)
    return host in _YOUTUBE_HOSTS or host == "youtu.be"


def is_allowed_url(url: str) -> bool:
    """Hard gate: http(s) only, no disallowed domains, no search-result pages."""
    try:
        parsed = urlparse(str(url or "").strip())
        scheme = str(parsed.scheme or "").lower()
        host = _strip_www(parsed.hostname or "")
    except ValueError:
        return False
    if scheme not in {"http", "https"} or not host:
        return False
    if any(_host_matches(host, domain) for domain in _DISALLOWED_DOMAINS):
        return False
    if _BARE_GOOGLE_RE.match(host):
        return False

    path = str(parsed.path or "/").lower()
    if _is_google_host(host) and (path.startswith("/search") or _GOOGLE_SEARCH_SUBDOMAIN_RE.match(host)):
        return False
    if host in _YOUTUBE_HOSTS and path.startswith("/results"):
        return False
    if _host_matches(host, "bing.com") and path.startswith("/search"):
        return False
    if _host_matches(host, "duckduckgo.com") or _host_matches(host, "search.yahoo.com"):
        return False
    return True


def _clean_domain(value: str) -> str:
    text = str(value or "").strip().lower()
    if "://" in text:
        text = url_host(text)
    if text.startswith("*."):
        text = text[2:]
    return _strip_www(text.strip("/"))


@dataclass(frozen=True)
class ExclusionSet:
    """Previously used URLs and avoided domains (`*.example.com` wildcards allowed)."""

    urls: FrozenSet[str] = field(default_factory=frozenset)
    domains: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def build(cls, urls: Iterable[str] = (), domains: Iterable[str] = ()) -> "ExclusionSet":
        normalized_urls = frozenset(u for u in (normalize_url(x) for x in urls) if u)
        cleaned_domains = frozenset(d for d in (_clean_domain(x) for x in domains) if d)
        return cls(urls=normalized_urls, domains=cleaned_domains)

    def contains(self, url: str) -> bool:
        normalized = normalize_url(url)
        if normalized in self.urls:
            return True
        if not self.domains:
            return False
        host = url_host(normalized)
        if not host:
            return False
        return any(_host_matches(host, domain) for domain in self.domains)
