"""Reporting utilities for evaluation results."""

import csv
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .comparison import summarize_comparison
from .models import ComparisonRecord, ComparisonStatus, EntityRecord, MetricsResult
from .pipeline import PipelineResults

STATUS_STYLES = {
    ComparisonStatus.CORRECT: "green",
    ComparisonStatus.INCORRECT: "red",
    ComparisonStatus.MISSING: "yellow",
    ComparisonStatus.EXTRA: "magenta",
}

COMPARISON_CSV_FIELDS = [
    "case_id",
    "approach",
    "identifier",
    "status",
    "entity",
    "ground_truth",
    "predicted",
    "details",
]


def format_signature(record: EntityRecord | None) -> str:
    """Render a record's top-ranked signature as ``(a: number) => string``."""
    if record is None:
        return "-"
    types = record.types
    if types.params is None:
        return types.return_type
    params = ", ".join(f"{name}: {t}" for name, t in types.params.items())
    return f"({params}) => {types.return_type}"


def print_metrics(metrics: MetricsResult, console: Console, title: str = "Metrics") -> None:
    """Print accuracy and MRR as a table.

    Args:
        metrics: Metrics to print.
        console: Rich console for output.
        title: Table title.
    """
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Accuracy", f"{metrics.accuracy:.1%}")
    table.add_row("MRR", f"{metrics.mrr:.3f}")
    table.add_row("Correct (top-1)", f"{metrics.correct_predictions}/{metrics.total_predictions}")
    table.add_row("Total reciprocal rank", f"{metrics.total_reciprocal_rank:.3f}")

    console.print(table)


def print_comparison(
    records: Iterable[ComparisonRecord],
    console: Console,
    statuses: Iterable[ComparisonStatus] | None = None,
) -> None:
    """Print a per-identifier comparison table.

    Args:
        records: Comparison records, already sorted.
        console: Rich console for output.
        statuses: If given, only records with these statuses are shown.
    """
    wanted = set(statuses) if statuses else None
    records = list(records)

    table = Table(title="Detailed Comparison")
    table.add_column("Identifier", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Ground Truth")
    table.add_column("Predicted")
    table.add_column("Details", max_width=60)

    for record in records:
        if wanted is not None and record.status not in wanted:
            continue
        style = STATUS_STYLES[record.status]
        table.add_row(
            escape(record.identifier),
            f"[{style}]{record.status.value.upper()}[/{style}]",
            escape(format_signature(record.ground_truth)),
            escape(format_signature(record.predicted)),
            escape(record.details or ""),
        )

    console.print(table)

    counts = summarize_comparison(records)
    parts = []
    for status in ComparisonStatus:
        style = STATUS_STYLES[status]
        parts.append(f"[{style}]{status.value}: {counts[status.value]}[/{style}]")
    console.print("  ".join(parts))


def print_pipeline_summary(results: PipelineResults, console: Console) -> None:
    """Print pooled metrics per approach and a per-case table.

    Args:
        results: Pipeline results.
        console: Rich console for output.
    """
    console.print()
    console.print("[bold]Pipeline Summary[/bold]")
    console.print(f"  Cases evaluated: {len(results.cases)}")
    console.print(f"  Successful: {results.successful}")
    console.print(f"  Failed: {results.failed}")
    console.print()

    table = Table(title="Approaches")
    table.add_column("Approach", style="cyan")
    table.add_column("Accuracy", justify="right")
    table.add_column("MRR", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Files", justify="right")

    for name in results.approaches:
        agg = results.aggregates.get(name)
        if agg is None or agg.total_predictions == 0:
            table.add_row(name, "-", "-", "-", str(agg.files if agg else 0))
            continue
        table.add_row(
            name,
            f"{agg.average_accuracy:.1%}",
            f"{agg.average_mrr:.3f}",
            f"{agg.total_correct}/{agg.total_predictions}",
            str(agg.files),
        )
    console.print(table)

    winner = results.winner()
    if winner:
        console.print(f"[bold]Winner:[/bold] {winner[0]} ({winner[1]:.1%} better accuracy)")

    console.print()
    case_table = Table(title="Per-Case Results")
    case_table.add_column("Case", style="dim")
    case_table.add_column("Ground Truth", justify="right")
    for name in results.approaches:
        case_table.add_column(name, justify="center")
    case_table.add_column("Error", style="red", max_width=50)

    for case in results.cases:
        cells = []
        for name in results.approaches:
            outcome = case.outcomes.get(name)
            if outcome is None:
                cells.append("[dim]-[/dim]")
            elif outcome.error:
                cells.append("[red]ERROR[/red]")
            else:
                m = outcome.metrics
                cells.append(f"{m.accuracy:.0%} / {m.mrr:.2f}")

        error_msg = case.error or ""
        if len(error_msg) > 50:
            error_msg = error_msg[:47] + "..."
        case_table.add_row(
            escape(case.case_id), str(case.ground_truth_count), *cells, escape(error_msg)
        )

    console.print(case_table)


def evaluation_to_dict(
    metrics: MetricsResult,
    comparison: list[ComparisonRecord],
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the serializable payload for a single-file evaluation."""
    return {
        "metadata": metadata or {},
        "metrics": metrics.to_dict(),
        "summary": summarize_comparison(comparison),
        "comparison": [record.to_dict() for record in comparison],
    }


def save_json_results(data: dict[str, Any], output_path: Path) -> None:
    """Save a results payload to a JSON file.

    Args:
        data: Payload from ``evaluation_to_dict`` or ``PipelineResults.to_dict``.
        output_path: Path to save the JSON file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)


def save_yaml_results(data: dict[str, Any], output_path: Path) -> None:
    """Save a results payload to a YAML file.

    Args:
        data: Payload from ``evaluation_to_dict`` or ``PipelineResults.to_dict``.
        output_path: Path to save the YAML file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def save_markdown_report(results: PipelineResults, output_path: Path) -> None:
    """Save pipeline results as a Markdown report.

    Args:
        results: Pipeline results.
        output_path: Path to save the Markdown file.
    """
    lines = []

    lines.append(f"# Type Prediction Evaluation Report: {results.name}")
    lines.append("")
    lines.append(f"**Generated:** {results.timestamp}")
    lines.append(f"**Cases Processed:** {len(results.cases)}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Successful comparisons: {results.successful}")
    lines.append(f"- Failed comparisons: {results.failed}")
    lines.append("")

    lines.append("| Approach | Accuracy | MRR | Correct |")
    lines.append("|----------|----------|-----|---------|")
    for name in results.approaches:
        agg = results.aggregates.get(name)
        if agg is None or agg.total_predictions == 0:
            lines.append(f"| {name} | - | - | - |")
            continue
        lines.append(
            f"| {name} | {agg.average_accuracy:.1%} | {agg.average_mrr:.3f} "
            f"| {agg.total_correct}/{agg.total_predictions} |"
        )
    lines.append("")

    winner = results.winner()
    if winner:
        lines.append(f"**Winner:** {winner[0]} ({winner[1]:.1%} better accuracy)")
        lines.append("")

    lines.append("## Individual Results")
    lines.append("")
    for i, case in enumerate(results.cases, start=1):
        lines.append(f"### {i}. {case.case_id}")
        if case.description:
            lines.append("")
            lines.append(case.description)
            lines.append("")
        lines.append(f"- Duration: {case.duration_seconds:.2f}s")
        if case.error:
            lines.append(f"- Error: {case.error}")
        else:
            lines.append(f"- Ground truth: {case.ground_truth_count} identifiers")
        for name, outcome in case.outcomes.items():
            if outcome.error:
                lines.append(f"- {name}: failed ({outcome.error})")
            elif outcome.metrics is not None:
                m = outcome.metrics
                lines.append(
                    f"- {name}: {m.accuracy:.1%} accuracy, {m.mrr:.3f} MRR "
                    f"({m.correct_predictions}/{m.total_predictions})"
                )
        lines.append("")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(lines))


def save_evaluation_markdown(
    metrics: MetricsResult,
    comparison: list[ComparisonRecord],
    output_path: Path,
    title: str = "Type Prediction Evaluation",
) -> None:
    """Save a single-file evaluation as a Markdown report.

    Args:
        metrics: Metrics for the file.
        comparison: Detailed comparison records.
        output_path: Path to save the Markdown file.
        title: Report heading.
    """
    lines = [f"# {title}", ""]
    lines.append(f"- Accuracy: {metrics.accuracy:.1%}")
    lines.append(f"- MRR: {metrics.mrr:.3f}")
    lines.append(f"- Correct: {metrics.correct_predictions}/{metrics.total_predictions}")
    lines.append("")

    lines.append("| Identifier | Status | Ground Truth | Predicted | Details |")
    lines.append("|------------|--------|--------------|-----------|---------|")
    for record in comparison:
        cells = [
            record.identifier,
            record.status.value,
            format_signature(record.ground_truth),
            format_signature(record.predicted),
            record.details or "",
        ]
        lines.append("| " + " | ".join(c.replace("|", "\\|") for c in cells) + " |")
    lines.append("")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(lines))


def _comparison_row(case_id: str, approach: str, record: ComparisonRecord) -> dict[str, str]:
    source = record.ground_truth or record.predicted
    return {
        "case_id": case_id,
        "approach": approach,
        "identifier": record.identifier,
        "status": record.status.value,
        "entity": source.entity.value if source else "",
        "ground_truth": format_signature(record.ground_truth) if record.ground_truth else "",
        "predicted": format_signature(record.predicted) if record.predicted else "",
        "details": record.details or "",
    }


def save_comparison_csv(
    records: Iterable[ComparisonRecord],
    output_path: Path,
    case_id: str = "",
    approach: str = "",
) -> None:
    """Save detailed comparison records to a CSV file.

    Args:
        records: Comparison records.
        output_path: Path to save the CSV file.
        case_id: Value for the ``case_id`` column.
        approach: Value for the ``approach`` column.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=COMPARISON_CSV_FIELDS)
        writer.writeheader()
        for record in records:
            writer.writerow(_comparison_row(case_id, approach, record))


def save_pipeline_comparison_csv(results: PipelineResults, output_path: Path) -> None:
    """Save every case's and approach's comparison records to one CSV file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=COMPARISON_CSV_FIELDS)
        writer.writeheader()
        for case in results.cases:
            for name, outcome in case.outcomes.items():
                for record in outcome.comparison:
                    writer.writerow(_comparison_row(case.case_id, name, record))


def write_pipeline_reports(
    results: PipelineResults,
    output_dir: Path,
    *,
    save_json: bool = True,
    save_yaml: bool = False,
    save_markdown: bool = True,
    save_csv: bool = False,
) -> dict[str, Path]:
    """Write the selected pipeline reports into a directory.

    Returns:
        Mapping of report kind to the path written.
    """
    written: dict[str, Path] = {}
    if save_json:
        written["json"] = output_dir / "results.json"
        save_json_results(results.to_dict(), written["json"])
    if save_yaml:
        written["yaml"] = output_dir / "results.yaml"
        save_yaml_results(results.to_dict(), written["yaml"])
    if save_markdown:
        written["markdown"] = output_dir / "report.md"
        save_markdown_report(results, written["markdown"])
    if save_csv:
        written["csv"] = output_dir / "comparison.csv"
        save_pipeline_comparison_csv(results, written["csv"])
    return written
