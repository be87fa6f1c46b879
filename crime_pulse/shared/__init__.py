"""
Crime Pulse - Shared Utilities

Shared modules used across the package:
- config: Configuration management
- logging_utils: Logging setup and structured events
- temporal: Date windows and weekly trends
- geo: Point extraction and choropleth shading
"""

from crime_pulse.shared.config import Settings, get_config, get_dataset_config, reload_config

__all__ = ["Settings", "get_config", "get_dataset_config", "reload_config"]
