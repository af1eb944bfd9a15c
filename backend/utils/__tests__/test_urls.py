"""
Tests for URL normalization.

Run: python3 -m pytest utils/__tests__/test_urls.py -v
"""
from utils.urls import is_valid_job_url, normalize_url, url_fingerprint


class TestNormalizeUrl:
    """Tests for the shared dedup key."""

    def test_trims_and_lowercases(self):
        assert normalize_url("  HTTPS://www.LinkedIn.com/jobs/view/123 ") == "https://www.linkedin.com/jobs/view/123"

    def test_empty(self):
        assert normalize_url(None) == ""
        assert normalize_url("") == ""


class TestIsValidJobUrl:
    """Tests for the absolute-URL check."""

    def test_absolute(self):
        assert is_valid_job_url("https://www.linkedin.com/jobs/view/1")

    def test_relative_or_missing(self):
        assert not is_valid_job_url("/jobs/view/1")
        assert not is_valid_job_url(None)


class TestUrlFingerprint:
    """Tests for fallback job ids."""

    def test_same_for_equivalent_urls(self):
        assert url_fingerprint("https://x.com/Job/1") == url_fingerprint(" https://x.com/job/1")
        assert len(url_fingerprint("https://x.com/job/1")) == 16
