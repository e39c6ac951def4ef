"""Configuration module for ReachGraph."""

from reachgraph.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
