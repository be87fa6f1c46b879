"""
Crime Pulse - crime incident dashboards over municipal open-data APIs.

Modules:
- datasets: Dataset registry
- soql: Query builder, response normalizer and HTTP client
- views: Row, monthly and stats views
- shared: Configuration, logging, temporal and geo utilities
"""

__version__ = "0.1.0"
