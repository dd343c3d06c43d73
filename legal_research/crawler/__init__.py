"""
Crawl-politeness helpers for the scraping adapters.
"""
