"""
Report rendering and the console sink.

Reports are written as a boxed table (the default), tab separated text or
JSON. In GitHub Actions the failure table is wrapped in a collapsible
::group:: section so it sits directly above the failing step's exit.
"""
import json
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from stack_diagnoser.models import DiagnosisReport, format_timestamp

FAILURE_GROUP_TITLE = "Failed Resources from Current Deployment"
EVENT_HEADERS = ["Timestamp", "LogicalResourceId", "ResourceType", "ResourceStatusReason"]
NO_EVENTS_MESSAGE = "No failed resources found in window"
OUTPUT_FORMATS = ("table", "text", "json")

Echo = Callable[[str], None]


def group_title(stack_name: str) -> str:
    return f"{FAILURE_GROUP_TITLE}: {stack_name}"


def _cell(value) -> str:
    """Single-line cell text; None renders as '-'."""
    if value is None or value == "":
        return "-"
    return str(value).replace("\r", " ").replace("\n", " ").replace("\t", " ")


def _truncate(s: str, width: int) -> str:
    if len(s) <= width:
        return s
    if width <= 3:
        return s[:width]
    return s[:width - 3] + "..."


def _event_rows(report: DiagnosisReport) -> List[List[str]]:
    return [
        [
            format_timestamp(event.timestamp),
            _cell(event.logical_resource_id),
            _cell(event.resource_type),
            _cell(event.resource_status_reason),
        ]
        for event in report.events
    ]


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]],
                 max_width: Optional[int] = None, empty_message: str = NO_EVENTS_MESSAGE) -> str:
    """
    headers: column titles
    rows: cell values, normalised to single-line text
    max_width: optional truncation width applied to every column
    """
    rows = [[_cell(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    if max_width is not None:
        widths = [min(w, max_width) for w in widths]

    rule = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    inner_width = len(rule) - 2

    def build_row(cells):
        return "|" + "|".join(f" {_truncate(c, w).ljust(w)} " for c, w in zip(cells, widths)) + "|"

    lines = [rule, build_row(headers), rule]
    if rows:
        lines.extend(build_row(row) for row in rows)
    else:
        message = _truncate(empty_message, inner_width)
        lines.append("|" + message.center(inner_width) + "|")
    lines.append(rule)
    return "\n".join(lines)


def _summary_lines(report: DiagnosisReport) -> List[str]:
    lines = [f"Stack: {report.stack_name}", f"Stack status: {report.status_value}"]
    if report.status_reason:
        lines.append(f"Status reason: {_cell(report.status_reason)}")
    if report.window is not None:
        lines.append(f"Events since: {format_timestamp(report.window.start)}")
    return lines


def _no_failure_message(report: DiagnosisReport) -> str:
    if not report.stack_found:
        return f"Stack {report.stack_name} not found (status: {report.status_value})"
    return f"No failure detected for stack {report.stack_name} (status: {report.status_value})"


def render_table(report: DiagnosisReport, max_width: Optional[int] = None) -> str:
    if not report.failure_detected:
        return _no_failure_message(report)
    lines = _summary_lines(report)
    lines.append(format_table(EVENT_HEADERS, _event_rows(report), max_width=max_width))
    return "\n".join(lines)


def render_text(report: DiagnosisReport) -> str:
    """Tab separated rows, one per event, after the summary lines."""
    if not report.failure_detected:
        return _no_failure_message(report)
    lines = _summary_lines(report)
    lines.extend("\t".join(row) for row in _event_rows(report))
    return "\n".join(lines)


def render_json(report: DiagnosisReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


def render(report: DiagnosisReport, fmt: str = "table", max_width: Optional[int] = None) -> str:
    if fmt == "table":
        return render_table(report, max_width=max_width)
    if fmt == "text":
        return render_text(report)
    if fmt == "json":
        return render_json(report)
    raise ValueError(f"Unknown output format: {fmt}. Must be one of {list(OUTPUT_FORMATS)}")


@contextmanager
def github_group(title: str, enabled: bool, echo: Echo = print) -> Iterator[None]:
    """Wrap output in a collapsible GitHub Actions log group."""
    if not enabled:
        yield
        return
    echo(f"::group::{title}")
    try:
        yield
    finally:
        echo("::endgroup::")


def emit_report(report: DiagnosisReport, fmt: str = "table", group: bool = False,
                echo: Echo = print, max_width: Optional[int] = None) -> None:
    """Write a rendered report to the console sink.

    Only failure reports are grouped; status lines for healthy or missing
    stacks are written plainly.
    """
    rendered = render(report, fmt, max_width=max_width)
    with github_group(group_title(report.stack_name), group and report.failure_detected, echo):
        echo(rendered)
