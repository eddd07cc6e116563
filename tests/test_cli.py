"""Tests for the command-line interface."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from typebench.cli import main

GROUND_TRUTH = [
    {
        "entity": "function",
        "name": "add",
        "types": {"params": {"a": "number", "b": "number"}, "return": "number"},
    },
    {"entity": "variable", "name": "bar", "types": {"return": "string"}},
]

PREDICTIONS = [
    {
        "entity": "function",
        "name": "add",
        "types": {"params": {"a": "number", "b": "number"}, "return": "number"},
    },
    {"entity": "variable", "name": "foo", "types": {"return": "boolean"}},
]


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def record_files(tmp_path: Path) -> tuple[Path, Path]:
    return (
        write_json(tmp_path / "truth.json", GROUND_TRUTH),
        write_json(tmp_path / "predictions.json", PREDICTIONS),
    )


class TestEvaluateCommand:
    """Tests for `typebench evaluate`."""

    def test_prints_metrics(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["evaluate", *map(str, record_files)])

        assert result.exit_code == 0, result.output
        assert "Accuracy" in result.output
        assert "50.0%" in result.output

    def test_details(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["evaluate", *map(str, record_files), "--details"])

        assert result.exit_code == 0, result.output
        assert "MISSING" in result.output
        assert "EXTRA" in result.output

    def test_writes_outputs(
        self, runner: CliRunner, record_files: tuple[Path, Path], tmp_path: Path
    ) -> None:
        out = tmp_path / "out"
        result = runner.invoke(
            main,
            [
                "evaluate",
                *map(str, record_files),
                "-o",
                str(out / "results.json"),
                "--yaml",
                str(out / "results.yaml"),
                "-r",
                str(out / "report.md"),
                "--csv",
                str(out / "comparison.csv"),
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads((out / "results.json").read_text())
        assert data["metrics"]["accuracy"] == 0.5
        assert data["metadata"]["predictions"].endswith("predictions.json")
        assert yaml.safe_load((out / "results.yaml").read_text())["summary"]["extra"] == 1
        assert "Accuracy: 50.0%" in (out / "report.md").read_text()
        assert (out / "comparison.csv").read_text().startswith("case_id,approach,identifier")

    def test_invalid_records_exit_1(self, runner: CliRunner, tmp_path: Path) -> None:
        truth = write_json(tmp_path / "truth.json", GROUND_TRUTH)
        bad = write_json(tmp_path / "bad.json", [{"entity": "method", "name": "x"}])

        result = runner.invoke(main, ["evaluate", str(truth), str(bad)])

        assert result.exit_code == 1
        assert "Invalid entity at index 0" in result.output

    def test_missing_file_is_usage_error(self, runner: CliRunner, tmp_path: Path) -> None:
        missing = [str(tmp_path / "a.json"), str(tmp_path / "b.json")]
        result = runner.invoke(main, ["evaluate", *missing])
        assert result.exit_code == 2

    def test_error_text_with_markup_is_printed_literally(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        truth = tmp_path / "truth.yaml"
        truth.write_text('x: "[/red] [/bold]\n')
        predictions = write_json(tmp_path / "predictions.json", PREDICTIONS)

        result = runner.invoke(main, ["evaluate", str(truth), str(predictions)])

        assert result.exit_code == 1
        assert "Error loading records" in result.output
        assert "[/red]" in result.output

    def test_unwritable_output_exit_1(
        self, runner: CliRunner, record_files: tuple[Path, Path], tmp_path: Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = runner.invoke(
            main,
            ["evaluate", *map(str, record_files), "-o", str(blocker / "results.json")],
        )

        assert result.exit_code == 1
        assert "Failed to write results" in result.output
        assert not isinstance(result.exception, OSError)


class TestCompareCommand:
    """Tests for `typebench compare`."""

    def test_all_statuses(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["compare", *map(str, record_files)])

        assert result.exit_code == 0, result.output
        assert "add" in result.output
        assert "bar" in result.output
        assert "foo" in result.output

    def test_status_filter(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["compare", *map(str, record_files), "-s", "extra"])

        assert result.exit_code == 0, result.output
        assert "foo" in result.output
        assert "bar" not in result.output

    def test_invalid_status(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["compare", *map(str, record_files), "-s", "wrong"])
        assert result.exit_code == 2


class TestValidateCommand:
    """Tests for `typebench validate`."""

    def test_valid_file(self, runner: CliRunner, record_files: tuple[Path, Path]) -> None:
        result = runner.invoke(main, ["validate", str(record_files[1])])

        assert result.exit_code == 0, result.output
        assert "predictions.json: 2 records" in result.output
        assert "Entities" in result.output
        assert "function" in result.output
        assert "Records are valid" in result.output

    def test_reports_duplicates(self, runner: CliRunner, tmp_path: Path) -> None:
        path = write_json(tmp_path / "dupes.json", [GROUND_TRUTH[1], GROUND_TRUTH[1]])

        result = runner.invoke(main, ["validate", str(path)])

        assert result.exit_code == 0, result.output
        assert "Duplicate names" in result.output

    def test_ground_truth_rejects_ranked(self, runner: CliRunner, tmp_path: Path) -> None:
        path = write_json(
            tmp_path / "ranked.json",
            [{"entity": "variable", "name": "x", "types": {"return": ["number", "string"]}}],
        )

        assert runner.invoke(main, ["validate", str(path)]).exit_code == 0
        result = runner.invoke(main, ["validate", str(path), "--ground-truth"])
        assert result.exit_code == 1
        assert "Invalid records file" in result.output

    def test_invalid_file(self, runner: CliRunner, tmp_path: Path) -> None:
        path = write_json(tmp_path / "bad.json", {"not": "a list"})

        result = runner.invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "must be an array" in result.output


class TestRunCommand:
    """Tests for `typebench run`."""

    @pytest.fixture
    def config_path(self, tmp_path: Path) -> Path:
        write_json(tmp_path / "truth.json", GROUND_TRUTH)
        write_json(tmp_path / "traditional.json", PREDICTIONS)
        write_json(tmp_path / "ast.json", GROUND_TRUTH)
        config = {
            "name": "cli-run",
            "output_dir": "results",
            "cases": [
                {
                    "id": "math",
                    "ground_truth": "truth.json",
                    "predictions": {"traditional": "traditional.json", "ast": "ast.json"},
                }
            ],
            "report": {"save_json": True, "save_markdown": True, "save_csv": True},
        }
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(config))
        return path

    def test_run_writes_reports(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(main, ["run", "-c", str(config_path)])

        assert result.exit_code == 0, result.output
        results_dir = config_path.parent / "results"
        data = json.loads((results_dir / "results.json").read_text())
        assert data["name"] == "cli-run"
        assert data["winner"]["approach"] == "ast"
        assert (results_dir / "report.md").exists()
        assert (results_dir / "comparison.csv").exists()
        assert not (results_dir / "results.yaml").exists()

    def test_output_dir_override(
        self, runner: CliRunner, config_path: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "elsewhere"
        result = runner.invoke(main, ["run", "-c", str(config_path), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert (out / "results.json").exists()

    def test_approach_subset(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(main, ["run", "-c", str(config_path), "-a", "ast"])

        assert result.exit_code == 0, result.output
        data = json.loads((config_path.parent / "results" / "results.json").read_text())
        assert data["approaches"] == ["ast"]

    def test_unknown_approach(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(main, ["run", "-c", str(config_path), "-a", "nope"])

        assert result.exit_code == 1
        assert "Unknown approach" in result.output

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("cases: []\n")

        result = runner.invoke(main, ["run", "-c", str(path)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output

    def test_all_cases_failed_exit_1(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.dump(
                {
                    "cases": [
                        {
                            "id": "gone",
                            "ground_truth": "missing.json",
                            "predictions": {"a": "a.json"},
                        }
                    ]
                }
            )
        )

        result = runner.invoke(main, ["run", "-c", str(path)])

        assert result.exit_code == 1


class TestCheckTypesCommand:
    """Tests for `typebench check-types`."""

    def test_compatible(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["check-types", "{a: number, b: string}", "{a: number}"])

        assert result.exit_code == 0
        assert "Compatible" in result.output

    def test_incompatible(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["check-types", "string", "number"])

        assert result.exit_code == 1
        assert "Not compatible" in result.output

    def test_shows_normalized_forms(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["check-types", "Array<string>", "string[]"])

        assert result.exit_code == 0
        assert "stringarray" in result.output


class TestMain:
    """Tests for the command group."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "evaluate" in result.output
        assert "check-types" in result.output
