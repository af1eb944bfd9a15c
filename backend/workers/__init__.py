"""
Pipeline workers.

Workers:
- ingestion_worker: Crawl pipeline orchestrator (sync, streaming and Lambda entry points)
- crawler_worker: List-page pagination per (keyword, country) group
- extractor_worker: Detail enrichment batches over the browser session pool
- rss_worker: RSS monitor notifications and RSS statistics extraction
"""
