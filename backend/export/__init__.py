"""
Export artifacts (xlsx) for crawled jobs.
"""
