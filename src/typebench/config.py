"""Configuration for multi-case evaluation runs.

A run is described in YAML::

    name: typescript-sample
    output_dir: results
    approaches: [traditional, ast]
    cases:
      - id: math-utils
        ground_truth: data/math.gt.json
        predictions:
          traditional: data/math.traditional.json
          ast: data/math.ast.json
    report:
      save_json: true
      save_markdown: true

Relative paths are resolved against the directory holding the config file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigError


class ReportOptions(BaseModel):
    """Which report files a run writes into its output directory."""

    save_json: bool = Field(default=True, description="Write results.json")
    save_yaml: bool = Field(default=False, description="Write results.yaml")
    save_markdown: bool = Field(default=True, description="Write report.md")
    save_csv: bool = Field(default=False, description="Write comparison.csv")


class EvaluationCase(BaseModel):
    """One source file: its ground truth and each approach's predictions."""

    id: str = Field(min_length=1, description="Unique case identifier")
    ground_truth: Path = Field(description="Ground-truth records file")
    predictions: dict[str, Path] = Field(
        default_factory=dict, description="Approach name to predictions file"
    )
    description: str = Field(default="", description="Free-form note shown in reports")


class EvaluationConfig(BaseModel):
    """Top-level evaluation run configuration."""

    name: str = Field(default="typebench", description="Run name used in reports")
    output_dir: Path = Field(default=Path("typebench-results"), description="Report directory")
    approaches: list[str] = Field(
        default_factory=list,
        description="Approach names in report order (inferred from cases when empty)",
    )
    cases: list[EvaluationCase] = Field(min_length=1, description="Cases to evaluate")
    report: ReportOptions = Field(default_factory=ReportOptions)

    @model_validator(mode="after")
    def _check_cases(self) -> "EvaluationConfig":
        seen: set[str] = set()
        for case in self.cases:
            if case.id in seen:
                raise ValueError(f"Duplicate case id: {case.id}")
            seen.add(case.id)

        if not self.approaches:
            for case in self.cases:
                for approach in case.predictions:
                    if approach not in self.approaches:
                        self.approaches.append(approach)
        else:
            declared = set(self.approaches)
            for case in self.cases:
                unknown = sorted(set(case.predictions) - declared)
                if unknown:
                    raise ValueError(
                        f"Case '{case.id}' has predictions for undeclared approaches: "
                        f"{', '.join(unknown)}"
                    )
        return self

    def resolve_paths(self, base_dir: Path) -> None:
        """Make every relative path absolute against ``base_dir``."""
        self.output_dir = _resolve(self.output_dir, base_dir)
        for case in self.cases:
            case.ground_truth = _resolve(case.ground_truth, base_dir)
            case.predictions = {
                name: _resolve(path, base_dir) for name, path in case.predictions.items()
            }


def _resolve(path: Path, base_dir: Path) -> Path:
    path = path.expanduser()
    return path if path.is_absolute() else base_dir / path


def parse_config(data: Any, base_dir: Path | None = None) -> EvaluationConfig:
    """Validate an already-parsed configuration mapping.

    Args:
        data: Parsed YAML value.
        base_dir: Directory relative paths are resolved against; left
            untouched when None.

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the data does not describe a valid configuration.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")
    try:
        config = EvaluationConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    if base_dir is not None:
        config.resolve_paths(base_dir)
    return config


def load_config(config_path: str | Path) -> EvaluationConfig:
    """Load an evaluation configuration from a YAML file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        Validated configuration with absolute paths.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails
            validation.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    return parse_config(data, base_dir=path.resolve().parent)
