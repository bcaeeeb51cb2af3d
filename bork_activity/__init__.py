"""Sui wallet activity ingestion, normalization and aggregation"""

__version__ = "1.0.0"
