"""Per-identifier classification of predictions against ground truth."""

from collections import Counter
from collections.abc import Iterable

from .matching import describe_type_differences, types_match
from .metrics import index_by_name
from .models import ComparisonRecord, ComparisonStatus, EntityRecord

EXTRA_DETAILS = "Predicted but not in ground truth"
MISSING_DETAILS = "In ground truth but not predicted"


def generate_detailed_comparison(
    predictions: Iterable[EntityRecord],
    ground_truth: Iterable[EntityRecord],
) -> list[ComparisonRecord]:
    """Classify every identifier as correct, incorrect, missing or extra.

    Ranked predictions are judged by their top candidate here; lower ranks
    only matter to MRR.

    Args:
        predictions: Predicted records.
        ground_truth: Ground-truth records.

    Returns:
        Comparison records sorted by identifier.
    """
    predicted_by_name = index_by_name(predictions)
    ground_truth_by_name = index_by_name(ground_truth)

    records: list[ComparisonRecord] = []
    for name, predicted in predicted_by_name.items():
        expected = ground_truth_by_name.get(name)
        if expected is None:
            records.append(
                ComparisonRecord(
                    identifier=name,
                    status=ComparisonStatus.EXTRA,
                    predicted=predicted,
                    details=EXTRA_DETAILS,
                )
            )
        elif types_match(predicted.types, expected.types):
            records.append(
                ComparisonRecord(
                    identifier=name,
                    status=ComparisonStatus.CORRECT,
                    ground_truth=expected,
                    predicted=predicted,
                )
            )
        else:
            records.append(
                ComparisonRecord(
                    identifier=name,
                    status=ComparisonStatus.INCORRECT,
                    ground_truth=expected,
                    predicted=predicted,
                    details=describe_type_differences(predicted.types, expected.types),
                )
            )

    for name, expected in ground_truth_by_name.items():
        if name not in predicted_by_name:
            records.append(
                ComparisonRecord(
                    identifier=name,
                    status=ComparisonStatus.MISSING,
                    ground_truth=expected,
                    details=MISSING_DETAILS,
                )
            )

    records.sort(key=lambda r: r.identifier)
    return records


def summarize_comparison(records: Iterable[ComparisonRecord]) -> dict[str, int]:
    """Count comparison records per status (every status is present)."""
    counts = Counter(record.status for record in records)
    return {status.value: counts.get(status, 0) for status in ComparisonStatus}
