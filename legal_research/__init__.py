"""
Legal research aggregator.

Aggregates cases, articles, citations and judges from a local store, external
legal APIs and polite web scrapers into one ranked, deduplicated result list.
"""

__version__ = "0.1.0"
