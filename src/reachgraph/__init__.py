"""ReachGraph - content family graph and cross-platform analytics rollups."""

__version__ = "0.3.0"
