"""
Deduplication caches.

- run_cache: in-memory URL set for one crawl (resets when the day changes)
- url_cache: persistent URL set with a 48h TTL, file or bucket backed

The permanent tier (URL index) lives in storage.archive_store.
"""
