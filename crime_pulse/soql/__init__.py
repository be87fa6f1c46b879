"""
Crime Pulse - SoQL

Query strings, response normalization and the HTTP client.
"""

from crime_pulse.soql.client import SoqlClient, build_url
from crime_pulse.soql.normalizer import Column, TableModel, get_cell_value, normalize_payload

__all__ = [
    "Column",
    "SoqlClient",
    "TableModel",
    "build_url",
    "get_cell_value",
    "normalize_payload",
]
