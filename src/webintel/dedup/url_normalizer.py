"""
URL canonicalization.

``normalize_url`` is the single definition of URL identity: two URLs refer
to the same resource iff they normalize to the same string.
"""
import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

logger = logging.getLogger(__name__)


def _sorted_query(query: str) -> str:
    """Sort query parameters by key, keeping repeated keys in their order."""
    pairs = []
    for part in query.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        pairs.append((key, value))
    pairs.sort(key=lambda pair: pair[0])
    return "&".join(f"{key}={value}" for key, value in pairs)


def _fallback_normalize(url: str) -> str:
    """Best-effort string normalization for input that does not parse."""
    result = re.sub(r"^http://", "https://", url.strip(), flags=re.IGNORECASE)
    result = result.split("#", 1)[0]
    return result.rstrip("/") or result


def normalize_url(url: str) -> str:
    """
    Canonicalize a URL for use as a dedup key.

    Rules, in order: scheme forced to https; trailing slash stripped from
    the path (an empty path becomes ``/``); fragment dropped; query
    parameters sorted by key. The host is lower-cased.

    Never raises; malformed input gets a best-effort string substitution.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL string
    """
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url!r}")
        path = parts.path.rstrip("/") or "/"
        query = _sorted_query(parts.query)
        return urlunsplit(("https", parts.netloc.lower(), path, query, ""))
    except (ValueError, AttributeError) as e:
        logger.debug(f"Falling back to string normalization for {url!r}: {e}")
        return _fallback_normalize(str(url))


def strip_www(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def bare_domain(domain: str) -> str:
    """Reduce 'https://www.Example.com/x' or 'example.com' to 'example.com'."""
    domain = domain.strip()
    if "://" in domain:
        domain = urlsplit(domain).hostname or ""
    return strip_www(domain.split("/", 1)[0].split(":", 1)[0])


def is_same_domain(url: str, domain: str) -> bool:
    """
    Check whether a URL belongs to a domain or one of its subdomains.

    A leading ``www.`` is ignored on both sides.

    Args:
        url: Absolute URL to check
        domain: Domain to compare against (scheme optional)

    Returns:
        True if the hostname matches exactly or by subdomain suffix
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    host = strip_www(host)
    target = bare_domain(domain)
    if not target:
        return False
    return host == target or host.endswith("." + target)


def to_absolute_url(href: str, base_url: str) -> Optional[str]:
    """Resolve a relative or protocol-relative href against a base URL."""
    try:
        return urljoin(base_url, href.strip())
    except ValueError:
        return None
