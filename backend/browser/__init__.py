"""
Headless browser lifecycle and the bounded session pool used for crawling.
"""
