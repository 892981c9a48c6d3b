"""Name, domain and similarity normalization shared by every identity comparison.

``normalize_brand_slug`` is THE identity key function: the resolver derives
``canonical_slug`` from it and every later comparison (own-brand matching, repair
passes) must call the same function. ``display_slug`` only produces a readable
key for fact rows and is never compared with canonical slugs.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

# Trailing ".com" style suffix on a brand name ("acme.com" -> "acme")
_DOMAIN_SUFFIX = re.compile(r"\.(?:com|io|ai|co|net|org|app|dev|so|us|uk|de|ru)$")

# One trailing legal-entity / product-noun suffix ("Acme, Inc." -> "acme")
_ENTITY_SUFFIX = re.compile(
    r"(?:\s+|\s*,\s*)(?:inc|llc|corp|corporation|ltd|limited|co|company|software|platform|tool|app)\.?$"
)

_NON_WORD = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")
_DISPLAY_SEPARATORS = re.compile(r"[\W_]+")
_WORDS = re.compile(r"[^\W_]+")


def normalize_brand_slug(name: str | None) -> str:
    """Convert a raw brand name into its canonical identity slug.

    Total function: ``None`` or blank input gives ``""``.

    >>> normalize_brand_slug("Acme Inc.")
    'acme'
    >>> normalize_brand_slug("acme.com")
    'acme'
    """
    if not name:
        return ""
    slug = name.lower().strip()
    slug = _DOMAIN_SUFFIX.sub("", slug)
    slug = _ENTITY_SUFFIX.sub("", slug)
    slug = _NON_WORD.sub("", slug)
    slug = _WHITESPACE.sub(" ", slug)
    return slug.strip()


def display_slug(name: str | None) -> str:
    """Readable hyphenated key used as ``brand_slug`` on fact rows."""
    if not name:
        return ""
    return _DISPLAY_SEPARATORS.sub("-", name.lower()).strip("-")


def normalize_domain(value: str | None) -> str | None:
    """Extract a comparable domain from a URL or bare domain string.

    Strips scheme, path, port and a leading ``www.``; returns None for empty
    input or anything that does not look like a host name.
    """
    if not value or not value.strip():
        return None
    value = value.strip()
    if "://" not in value:
        value = f"http://{value}"
    try:
        host = urlparse(value).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    if "." not in host or any(ch.isspace() for ch in host):
        return None
    return host


def domains_match(candidate: str | None, tracked: str | None) -> bool:
    """True if ``candidate`` is ``tracked`` or one of its subdomains."""
    a = normalize_domain(candidate)
    b = normalize_domain(tracked)
    if not a or not b:
        return False
    return a == b or a.endswith("." + b)


# ---------------------------------------------------------------------------
# Trigram similarity (pg_trgm semantics)
# ---------------------------------------------------------------------------


def _trigrams(text: str) -> set[str]:
    grams: set[str] = set()
    for word in _WORDS.findall(text.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(a: str | None, b: str | None) -> float:
    """Jaccard similarity of word trigram sets, as PostgreSQL ``similarity()``."""
    if not a or not b:
        return 0.0
    ga = _trigrams(a)
    gb = _trigrams(b)
    if not ga or not gb:
        return 0.0
    return len(ga & gb) / len(ga | gb)
