"""Report generation module for ReachGraph."""

from reachgraph.reports.generator import FamilyReportGenerator

__all__ = ["FamilyReportGenerator"]
