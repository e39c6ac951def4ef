"""Markdown report generation for content families."""

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from reachgraph import __version__
from reachgraph.config import get_settings
from reachgraph.engine import ReachGraphEngine, get_engine
from reachgraph.exceptions import ReportError
from reachgraph.processing.aggregation import FamilyMetrics, Period
from reachgraph.processing.insights import EntityType
from reachgraph.utils.formatting import (
    format_change,
    format_currency,
    format_date,
    format_number,
    format_percent,
    truncate_text,
)
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATE_NAME = "family_report.md.j2"


class FamilyReportGenerator:
    """Render a family's rollup and insights as a markdown report."""

    def __init__(self, engine: ReachGraphEngine | None = None) -> None:
        """
        Initialize the report generator.

        Args:
            engine: Engine to query. Defaults to the shared instance.
        """
        self.settings = get_settings()
        self.engine = engine or get_engine()
        self._env: Environment | None = None

    @property
    def env(self) -> Environment:
        """Get or create the Jinja2 environment."""
        if self._env is None:
            template_dir = Path(__file__).parent / "templates"
            self._env = Environment(
                loader=FileSystemLoader(str(template_dir)),
                autoescape=select_autoescape(["html", "xml"]),
                trim_blocks=True,
                lstrip_blocks=True,
            )
            self._env.filters["truncate_text"] = truncate_text
            self._env.filters["format_number"] = format_number
            self._env.filters["format_percent"] = format_percent
            self._env.filters["format_change"] = format_change
            self._env.filters["format_currency"] = format_currency
            self._env.filters["format_date"] = format_date
        return self._env

    def render(self, root_id: str, period: Period | None = None) -> str:
        """
        Render the report for a family without writing it.

        Raises:
            InvalidReferenceError: If root_id does not exist.
            ReportError: If the template fails to render.
        """
        period = period or self.engine.default_period()
        metrics = self.engine.family(root_id, period)

        insights = self.engine.insights(metrics.root_content_id, EntityType.FAMILY, period)
        context = self._build_context(metrics, insights)

        try:
            return self.env.get_template(TEMPLATE_NAME).render(**context)
        except TemplateError as e:
            raise ReportError(f"Could not render {TEMPLATE_NAME}: {e}") from e

    def generate(
        self,
        root_id: str,
        period: Period | None = None,
        output_path: Path | None = None,
    ) -> Path:
        """
        Generate a markdown report for the family containing root_id.

        Args:
            root_id: Root (or any member) of the family.
            period: Reporting period. Defaults to the configured window.
            output_path: Custom output path. Uses the reports directory if not provided.

        Returns:
            Path to the generated report.
        """
        content = self.render(root_id, period)

        if output_path is None:
            output_path = self._get_default_output_path(root_id)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ReportError(f"Could not write report to {output_path}: {e}") from e

        logger.info(f"Report generated: {output_path}")
        return output_path

    def _build_context(self, metrics: FamilyMetrics, insights: list) -> dict[str, Any]:
        """Build the template context from a family rollup."""
        root = next(
            (item for item in metrics.content_items if item.content_id == metrics.root_content_id),
            None,
        )
        series = metrics.time_series.get("views")

        return {
            "version": __version__,
            "generated_at": datetime.now(),
            "family": metrics,
            "root": root,
            "period": metrics.period,
            "totals": metrics.aggregate_metrics,
            "overlap": metrics.audience_overlap,
            "items": sorted(metrics.content_items, key=lambda item: (item.depth, item.content_id)),
            "views_trend": series.trend if series else "stable",
            "insights": insights,
        }

    def _get_default_output_path(self, root_id: str) -> Path:
        """Get the default output path for a report."""
        filename = self.settings.reports.filename_format.format(
            root_id=root_id,
            date=datetime.now().strftime("%Y-%m-%d"),
            time=datetime.now().strftime("%H%M%S"),
        )
        return self.settings.reports.output_directory / filename
