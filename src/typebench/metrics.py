"""Accuracy and Mean Reciprocal Rank over a batch of predictions.

Accuracy is strictly top-1: a prediction counts as correct only when its
first candidate matches. MRR gives partial credit ``1/rank`` for the first
matching candidate further down the list. Both are divided by the number of
predictions, so predicting an identifier that is not in ground truth costs a
slot without adding anything to the numerators.
"""

from collections.abc import Iterable, Sequence

from .matching import types_match
from .models import AggregateMetrics, EntityRecord, MetricsResult


def index_by_name(records: Iterable[EntityRecord]) -> dict[str, EntityRecord]:
    """Index records by name; on duplicate names the last record wins."""
    return {record.name: record for record in records}


def first_matching_rank(prediction: EntityRecord, ground_truth: EntityRecord) -> int | None:
    """Return the 1-based rank of the first candidate matching ground truth.

    Returns None when no candidate matches.
    """
    for rank, candidate in enumerate(prediction.candidates, start=1):
        if types_match(candidate.types, ground_truth.types):
            return rank
    return None


def calculate_metrics(
    predictions: Sequence[EntityRecord],
    ground_truth: Iterable[EntityRecord],
) -> MetricsResult:
    """Compute accuracy and MRR for predictions against ground truth.

    Args:
        predictions: Predicted records, single-guess or ranked.
        ground_truth: Ground-truth records.

    Returns:
        MetricsResult; all zeros when there are no predictions.
    """
    ground_truth_by_name = index_by_name(ground_truth)

    correct = 0
    reciprocal_rank_sum = 0.0
    for prediction in predictions:
        expected = ground_truth_by_name.get(prediction.name)
        if expected is None:
            continue
        rank = first_matching_rank(prediction, expected)
        if rank is None:
            continue
        reciprocal_rank_sum += 1.0 / rank
        if rank == 1:
            correct += 1

    total = len(predictions)
    return MetricsResult(
        accuracy=correct / total if total else 0.0,
        mrr=reciprocal_rank_sum / total if total else 0.0,
        total_predictions=total,
        correct_predictions=correct,
        total_reciprocal_rank=reciprocal_rank_sum,
    )


def aggregate_metrics(results: Iterable[MetricsResult]) -> AggregateMetrics:
    """Pool per-file metrics into one micro-averaged result.

    Args:
        results: One MetricsResult per evaluated file.

    Returns:
        AggregateMetrics; all zeros when nothing was predicted.
    """
    results = list(results)
    total_correct = sum(r.correct_predictions for r in results)
    total_predictions = sum(r.total_predictions for r in results)
    total_reciprocal_rank = sum(r.total_reciprocal_rank for r in results)

    return AggregateMetrics(
        average_accuracy=total_correct / total_predictions if total_predictions else 0.0,
        average_mrr=total_reciprocal_rank / total_predictions if total_predictions else 0.0,
        total_correct=total_correct,
        total_predictions=total_predictions,
        total_reciprocal_rank=total_reciprocal_rank,
        files=len(results),
    )
