"""Final import report: human-readable text and a JSON copy."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import ImportReport

logger = logging.getLogger(__name__)

REPORT_SCHEMA_VERSION = "1.0.0"


def _show_status(report: ImportReport) -> str:
    show = report.show
    if not show.success:
        return f"failed ({show.error})"
    if show.skipped:
        return f"skipped ({show.skip_reason})"
    if show.created:
        return "created"
    if show.updated:
        return "updated"
    return "ready"


def render_report(report: ImportReport, dry_run: bool = False, log_file: Optional[str] = None) -> str:
    """Render the end-of-run report.

    Always lists the counts, and the title and error message of every failed
    episode, so a partial success reads differently from a total failure.

    Args:
        report: Aggregated run outcome
        dry_run: Append a notice that nothing was written
        log_file: Run log path to mention, if any

    Returns:
        Multi-line report text
    """
    lines: List[str] = [
        "",
        "Import Complete!",
        "",
        f"Show: {_show_status(report)}",
        f"Imported: {report.imported} episodes",
    ]
    if report.skipped:
        lines.append(f"Skipped: {report.skipped} episodes (already exist)")
    if report.failed:
        lines.append(f"Failed: {report.failed} episodes")
    lines.append("")
    lines.append(f"Duration: {report.duration_seconds:.1f}s")
    if log_file:
        lines.append(f"Log file: {log_file}")

    failed = report.failed_episodes
    if failed:
        lines.append("")
        lines.append("Failed Episodes:")
        for result in failed:
            lines.append(f"  - {result.episode_title}: {result.error}")

    if dry_run:
        lines.append("")
        lines.append("This was a dry run. No changes were made to the content store.")
        lines.append("Run without --dry-run to perform the import.")
    lines.append("")
    return "\n".join(lines)


def build_report_document(report: ImportReport, feed_url: Optional[str] = None) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "feed_url": feed_url,
    }
    document.update(report.to_dict())
    return document


def save_report(
    report: ImportReport,
    path: Union[str, Path],
    feed_url: Optional[str] = None,
) -> str:
    """Save the report to a JSON file.

    Args:
        report: Aggregated run outcome
        path: Output file path; parent directories are created
        feed_url: Feed URL recorded in the document

    Returns:
        Path to saved file
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    report_json = json.dumps(build_report_document(report, feed_url), indent=2, default=str)
    output_path.write_text(report_json, encoding="utf-8")
    logger.info(f"Import report saved to: {output_path}")

    return str(output_path)
