"""Multi-approach comparison pipeline.

Runs several predictors over a set of evaluation cases, computes metrics and
detailed comparisons per case and approach, and pools the metrics per
approach. Predictors are handed to the pipeline explicitly; callers that
wrap an expensive remote client construct it once and pass the same
predictor object to every run.

A predictor that fails on one case is recorded as an error for that case and
approach and does not stop the run.
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .comparison import generate_detailed_comparison, summarize_comparison
from .config import EvaluationCase, EvaluationConfig
from .loading import load_ground_truth, load_records
from .metrics import aggregate_metrics, calculate_metrics
from .models import AggregateMetrics, ComparisonRecord, EntityRecord, MetricsResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Predictor(Protocol):
    """Anything that produces type predictions for an evaluation case."""

    name: str

    def predict(self, case: EvaluationCase) -> list[EntityRecord]:
        """Return predicted records for the case.

        Args:
            case: The case to predict types for.

        Returns:
            Predicted records, single-guess or ranked.
        """
        ...


class FilePredictor:
    """Predictor that reads pre-computed predictions from the case's files."""

    def __init__(self, name: str) -> None:
        self.name = name

    def predict(self, case: EvaluationCase) -> list[EntityRecord]:
        path = case.predictions.get(self.name)
        if path is None:
            raise FileNotFoundError(f"No predictions for approach '{self.name}' in case '{case.id}'")
        return load_records(path)


@dataclass
class ApproachOutcome:
    """Result of one approach on one case. Either ``metrics`` or ``error`` is set."""

    approach: str
    metrics: MetricsResult | None = None
    comparison: list[ComparisonRecord] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "approach": self.approach,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "comparison_summary": summarize_comparison(self.comparison),
            "error": self.error,
        }


@dataclass
class CaseResult:
    """Outcome of every approach on one case."""

    case_id: str
    description: str = ""
    ground_truth_count: int = 0
    outcomes: dict[str, ApproachOutcome] = field(default_factory=dict)
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "description": self.description,
            "ground_truth_count": self.ground_truth_count,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
            "outcomes": {name: o.to_dict() for name, o in self.outcomes.items()},
        }


@dataclass
class PipelineResults:
    """Everything a pipeline run produced."""

    name: str
    timestamp: str
    approaches: list[str]
    cases: list[CaseResult] = field(default_factory=list)
    aggregates: dict[str, AggregateMetrics] = field(default_factory=dict)

    @property
    def successful(self) -> int:
        return sum(1 for c in self.cases if c.succeeded)

    @property
    def failed(self) -> int:
        return len(self.cases) - self.successful

    def winner(self) -> tuple[str, float] | None:
        """Approach with the best pooled accuracy and its lead over the runner-up.

        Returns:
            ``(approach, margin)``, or None when fewer than two approaches made
            any predictions. Ties go to the approach listed first.
        """
        ranked = [
            (name, self.aggregates[name].average_accuracy)
            for name in self.approaches
            if name in self.aggregates and self.aggregates[name].total_predictions > 0
        ]
        if len(ranked) < 2:
            return None
        ranked.sort(key=lambda item: item[1], reverse=True)
        (best, best_accuracy), (_, runner_up_accuracy) = ranked[0], ranked[1]
        return best, best_accuracy - runner_up_accuracy

    def to_dict(self) -> dict[str, Any]:
        winner = self.winner()
        return {
            "name": self.name,
            "timestamp": self.timestamp,
            "approaches": list(self.approaches),
            "total_cases": len(self.cases),
            "successful": self.successful,
            "failed": self.failed,
            "aggregates": {name: agg.to_dict() for name, agg in self.aggregates.items()},
            "winner": {"approach": winner[0], "margin": winner[1]} if winner else None,
            "cases": [c.to_dict() for c in self.cases],
        }


class ComparisonPipeline:
    """Evaluate several predictors over a set of cases.

    Args:
        predictors: Predictors to evaluate, in report order. Names must be
            unique.
        name: Run name recorded in the results.
        ground_truth_loader: Callable that loads ground-truth records from a
            path; defaults to ``load_ground_truth``.
    """

    def __init__(
        self,
        predictors: Sequence[Predictor],
        name: str = "typebench",
        ground_truth_loader: Callable[[Path], list[EntityRecord]] = load_ground_truth,
    ) -> None:
        names = [p.name for p in predictors]
        if len(set(names)) != len(names):
            raise ValueError(f"Predictor names must be unique: {names}")
        self.predictors = list(predictors)
        self.name = name
        self._load_ground_truth = ground_truth_loader

    @classmethod
    def from_config(
        cls, config: EvaluationConfig, approaches: Iterable[str] | None = None
    ) -> "ComparisonPipeline":
        """Build a pipeline of file predictors for the configured approaches.

        Args:
            config: Loaded configuration.
            approaches: Optional subset of approach names to run.

        Raises:
            ValueError: If a requested approach is not configured.
        """
        selected = list(approaches) if approaches else list(config.approaches)
        unknown = [a for a in selected if a not in config.approaches]
        if unknown:
            raise ValueError(f"Unknown approach(es): {', '.join(unknown)}")
        return cls([FilePredictor(a) for a in selected], name=config.name)

    def run(self, cases: Sequence[EvaluationCase]) -> PipelineResults:
        """Evaluate every predictor on every case.

        Args:
            cases: Cases to evaluate, in order.

        Returns:
            PipelineResults with per-case outcomes and pooled metrics.
        """
        results = PipelineResults(
            name=self.name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            approaches=[p.name for p in self.predictors],
        )

        for i, case in enumerate(cases, start=1):
            logger.info("[%d/%d] Evaluating case %s", i, len(cases), case.id)
            result = self.run_case(case)
            if result.error:
                logger.warning("Case %s failed: %s", case.id, result.error)
            results.cases.append(result)

        for predictor in self.predictors:
            metrics: list[MetricsResult] = []
            for case_result in results.cases:
                outcome = case_result.outcomes.get(predictor.name)
                if case_result.succeeded and outcome is not None and outcome.metrics is not None:
                    metrics.append(outcome.metrics)
            results.aggregates[predictor.name] = aggregate_metrics(metrics)

        logger.info(
            "Pipeline finished: %d successful, %d failed",
            results.successful,
            results.failed,
        )
        return results

    def run_case(self, case: EvaluationCase) -> CaseResult:
        """Evaluate every predictor on a single case."""
        started = time.monotonic()
        result = CaseResult(case_id=case.id, description=case.description)

        try:
            ground_truth = self._load_ground_truth(case.ground_truth)
        except Exception as e:
            result.error = f"Failed to load ground truth: {e}"
            result.duration_seconds = time.monotonic() - started
            return result

        result.ground_truth_count = len(ground_truth)
        if not ground_truth:
            result.error = "No ground truth types found"
            result.duration_seconds = time.monotonic() - started
            return result

        for predictor in self.predictors:
            result.outcomes[predictor.name] = self._run_predictor(predictor, case, ground_truth)

        if self.predictors and all(o.error for o in result.outcomes.values()):
            result.error = "All approaches failed"

        result.duration_seconds = time.monotonic() - started
        return result

    def _run_predictor(
        self,
        predictor: Predictor,
        case: EvaluationCase,
        ground_truth: list[EntityRecord],
    ) -> ApproachOutcome:
        try:
            predictions = predictor.predict(case)
        except Exception as e:
            logger.warning("Approach %s failed on case %s: %s", predictor.name, case.id, e)
            return ApproachOutcome(approach=predictor.name, error=str(e))

        metrics = calculate_metrics(predictions, ground_truth)
        logger.info(
            "  %s: %.1f%% accuracy, %.3f MRR (%d/%d)",
            predictor.name,
            metrics.accuracy * 100,
            metrics.mrr,
            metrics.correct_predictions,
            metrics.total_predictions,
        )
        return ApproachOutcome(
            approach=predictor.name,
            metrics=metrics,
            comparison=generate_detailed_comparison(predictions, ground_truth),
        )
