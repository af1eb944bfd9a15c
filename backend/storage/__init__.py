"""
Archive storage.

- object_store: boto3 wrapper for the S3-compatible archive bucket
- statistics: MonthlyStatistics counters (incremental update + merge)
- archive_store: manifest, URL index and day shards with monthly rollover
"""
