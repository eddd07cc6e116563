"""Command-line interface for typebench."""

import logging
import sys
from collections import Counter
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .comparison import generate_detailed_comparison
from .compatibility import is_compatible
from .config import load_config
from .errors import TypebenchError
from .loading import find_duplicate_names, load_ground_truth, load_records
from .metrics import calculate_metrics
from .models import ComparisonStatus
from .normalizer import normalize_type
from .pipeline import ComparisonPipeline
from .reporting import (
    evaluation_to_dict,
    print_comparison,
    print_metrics,
    print_pipeline_summary,
    save_comparison_csv,
    save_evaluation_markdown,
    save_json_results,
    save_yaml_results,
    write_pipeline_reports,
)

console = Console()

STATUS_CHOICES = [status.value for status in ComparisonStatus]


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_pair(ground_truth_path: Path, predictions_path: Path, verbosity: int):
    try:
        ground_truth = load_ground_truth(ground_truth_path)
        predictions = load_records(predictions_path)
    except (TypebenchError, OSError) as e:
        console.print(f"[red]Error loading records: {escape(str(e))}[/red]")
        if verbosity > 0:
            console.print_exception()
        sys.exit(1)
    return ground_truth, predictions


verbose_option = click.option(
    "-v",
    "--verbose",
    "verbosity",
    count=True,
    help="Verbose output (-v for progress, -vv for debug)",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option()
def main() -> None:
    """typebench - TypeScript type prediction evaluator.

    Scores predicted type annotations against ground truth with
    structural compatibility, top-1 accuracy and mean reciprocal rank.

    \b
    Commands:
      evaluate     Score one predictions file against ground truth
      compare      Show the per-identifier comparison table
      validate     Check the shape of a records file
      run          Evaluate several approaches over a configured set of cases
      check-types  Check whether one type string satisfies another

    \b
    Quick Start:
      typebench evaluate truth.json predictions.json --details
      typebench run -c config.yaml -o results/
      typebench check-types "{a: number, b: string}" "{a: number}"
    """
    pass


@main.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("ground_truth_path", type=click.Path(exists=True, path_type=Path))
@click.argument("predictions_path", type=click.Path(exists=True, path_type=Path))
@click.option("--details", "-d", is_flag=True, help="Also print the detailed comparison table")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to save JSON results",
)
@click.option(
    "--yaml",
    "yaml_output",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to save YAML results",
)
@click.option(
    "--report",
    "-r",
    "report_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to save Markdown report",
)
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to save the detailed comparison as CSV",
)
@verbose_option
def evaluate(
    ground_truth_path: Path,
    predictions_path: Path,
    details: bool,
    output_path: Path | None,
    yaml_output: Path | None,
    report_path: Path | None,
    csv_path: Path | None,
    verbosity: int,
) -> None:
    """Score a predictions file against a ground-truth file.

    \b
    Examples:
      typebench evaluate truth.json predictions.json
      typebench evaluate truth.json predictions.json --details
      typebench evaluate truth.json response.txt -o out.json -r report.md
    """
    _configure_logging(verbosity)
    ground_truth, predictions = _load_pair(ground_truth_path, predictions_path, verbosity)

    metrics = calculate_metrics(predictions, ground_truth)
    comparison = generate_detailed_comparison(predictions, ground_truth)

    console.print("[bold]typebench Evaluation[/bold]")
    console.print(f"  Ground truth: {ground_truth_path} ({len(ground_truth)} records)")
    console.print(f"  Predictions: {predictions_path} ({len(predictions)} records)")
    console.print()
    print_metrics(metrics, console)

    if details:
        console.print()
        print_comparison(comparison, console)

    metadata = {
        "ground_truth": str(ground_truth_path),
        "predictions": str(predictions_path),
    }

    try:
        if output_path:
            save_json_results(evaluation_to_dict(metrics, comparison, metadata), output_path)
            console.print(f"\n[green]Results saved to {output_path}[/green]")

        if yaml_output:
            save_yaml_results(evaluation_to_dict(metrics, comparison, metadata), yaml_output)
            console.print(f"[green]YAML results saved to {yaml_output}[/green]")

        if report_path:
            save_evaluation_markdown(
                metrics,
                comparison,
                report_path,
                title=f"Type Prediction Evaluation: {predictions_path.name}",
            )
            console.print(f"[green]Report saved to {report_path}[/green]")

        if csv_path:
            save_comparison_csv(comparison, csv_path)
            console.print(f"[green]Comparison CSV saved to {csv_path}[/green]")
    except OSError as e:
        console.print(f"[red]Failed to write results: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("ground_truth_path", type=click.Path(exists=True, path_type=Path))
@click.argument("predictions_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--status",
    "-s",
    "statuses",
    multiple=True,
    type=click.Choice(STATUS_CHOICES),
    help="Only show identifiers with this status (repeatable)",
)
@verbose_option
def compare(
    ground_truth_path: Path,
    predictions_path: Path,
    statuses: tuple[str, ...],
    verbosity: int,
) -> None:
    """Show how each identifier was classified.

    \b
    Examples:
      typebench compare truth.json predictions.json
      typebench compare truth.json predictions.json -s incorrect -s missing
    """
    _configure_logging(verbosity)
    ground_truth, predictions = _load_pair(ground_truth_path, predictions_path, verbosity)

    comparison = generate_detailed_comparison(predictions, ground_truth)
    print_comparison(
        comparison,
        console,
        statuses=[ComparisonStatus(s) for s in statuses] if statuses else None,
    )


@main.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("records_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--ground-truth",
    "-g",
    "is_ground_truth",
    is_flag=True,
    help="Validate as ground truth (ranked candidates are rejected)",
)
def validate(records_path: Path, is_ground_truth: bool) -> None:
    """Validate a records file and count records per entity kind.

    \b
    Examples:
      typebench validate predictions.json
      typebench validate truth.json --ground-truth
    """
    try:
        records = load_records(records_path, ranked_allowed=not is_ground_truth)
    except (TypebenchError, OSError) as e:
        console.print(f"[red]Invalid records file: {escape(str(e))}[/red]")
        sys.exit(1)

    counts = Counter(record.entity.value for record in records)
    ranked = sum(1 for record in records if record.is_ranked)

    console.print(f"{records_path.name}: {len(records)} records", markup=False)

    table = Table(title="Entities")
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")
    for kind, count in sorted(counts.items()):
        table.add_row(kind, str(count))
    console.print(table)

    if ranked:
        console.print(f"  Ranked records: {ranked}")

    duplicates = find_duplicate_names(records)
    if duplicates:
        console.print(
            f"[yellow]Duplicate names (the last one is used): {escape(', '.join(duplicates))}[/yellow]"
        )

    console.print("[green]✓ Records are valid[/green]")


@main.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    "config_path",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="Path to YAML configuration file",
)
@click.option(
    "--output-dir",
    "-o",
    "output_dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Override the report directory from config",
)
@click.option(
    "--approach",
    "-a",
    "approaches",
    multiple=True,
    help="Only run this approach (repeatable)",
)
@verbose_option
def run(
    config_path: Path,
    output_dir: Path | None,
    approaches: tuple[str, ...],
    verbosity: int,
) -> None:
    """Evaluate every configured approach over every case.

    \b
    Examples:
      typebench run -c config.yaml
      typebench run -c config.yaml -o results/ -a ast
      typebench run -c config.yaml -v
    """
    _configure_logging(verbosity)

    try:
        config = load_config(config_path)
    except TypebenchError as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        sys.exit(1)

    if output_dir is not None:
        config.output_dir = output_dir

    try:
        pipeline = ComparisonPipeline.from_config(config, approaches=approaches or None)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print("[bold]typebench Pipeline[/bold]")
    console.print(f"  Config: {config_path}")
    console.print(f"  Name: {config.name}")
    console.print(f"  Cases: {len(config.cases)}")
    console.print(f"  Approaches: {', '.join(p.name for p in pipeline.predictors)}")
    console.print(f"  Output dir: {config.output_dir}")
    console.print()

    try:
        results = pipeline.run(config.cases)
    except KeyboardInterrupt:
        console.print("\n[yellow]Evaluation interrupted by user[/yellow]")
        sys.exit(130)

    print_pipeline_summary(results, console)

    try:
        written = write_pipeline_reports(
            results,
            config.output_dir,
            save_json=config.report.save_json,
            save_yaml=config.report.save_yaml,
            save_markdown=config.report.save_markdown,
            save_csv=config.report.save_csv,
        )
    except OSError as e:
        console.print(f"[red]Failed to write reports: {escape(str(e))}[/red]")
        sys.exit(1)

    for kind, path in written.items():
        console.print(f"[green]{kind} saved to {path}[/green]")

    if results.cases and results.successful == 0:
        sys.exit(1)


@main.command(name="check-types", context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("predicted")
@click.argument("ground_truth")
def check_types(predicted: str, ground_truth: str) -> None:
    """Check whether PREDICTED satisfies GROUND_TRUTH.

    Exits 0 when compatible and 1 otherwise.

    \b
    Examples:
      typebench check-types "string[]" "Array<string>"
      typebench check-types "{a: number, b: string}" "{a: number}"
    """
    compatible = is_compatible(predicted, ground_truth)
    console.print(f"  Predicted:    {normalize_type(predicted)}", markup=False)
    console.print(f"  Ground truth: {normalize_type(ground_truth)}", markup=False)
    if compatible:
        console.print("[green]✓ Compatible[/green]")
    else:
        console.print("[red]✗ Not compatible[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
