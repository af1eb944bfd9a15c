"""
URL normalization shared by every dedup tier.

The run cache, the persistent TTL cache and the archive URL index must agree
on what "the same job" means, so all of them go through normalize_url().
"""

import hashlib


def normalize_url(url: str | None) -> str:
    """
    Canonical dedup key for a job URL.

    Example:
        >>> normalize_url("  HTTPS://www.LinkedIn.com/jobs/view/123 ")
        'https://www.linkedin.com/jobs/view/123'
    """
    if not url:
        return ""
    return url.strip().lower()


def is_valid_job_url(url: str | None) -> bool:
    """A job URL is usable only if it is absolute (contains http)."""
    return "http" in normalize_url(url)


def url_fingerprint(url: str) -> str:
    """Short stable hash of the normalized URL, used for fallback job ids."""
    return hashlib.sha1(normalize_url(url).encode("utf-8")).hexdigest()[:16]
