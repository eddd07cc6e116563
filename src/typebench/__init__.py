"""typebench - TypeScript type prediction evaluator.

Scores predicted TypeScript type annotations against ground truth using
structural compatibility, top-1 accuracy and mean reciprocal rank.
"""

__version__ = "0.1.0"

from .comparison import generate_detailed_comparison
from .compatibility import is_compatible
from .errors import ConfigError, RecordFormatError, ResponseParseError, TypebenchError
from .loading import load_ground_truth, load_records, parse_records
from .matching import types_match
from .metrics import aggregate_metrics, calculate_metrics
from .models import (
    AggregateMetrics,
    Candidate,
    ComparisonRecord,
    ComparisonStatus,
    EntityKind,
    EntityRecord,
    Location,
    MetricsResult,
    TypeSignature,
)
from .normalizer import normalize_type
from .pipeline import ComparisonPipeline, FilePredictor, PipelineResults, Predictor

__all__ = [
    "AggregateMetrics",
    "Candidate",
    "ComparisonPipeline",
    "ComparisonRecord",
    "ComparisonStatus",
    "ConfigError",
    "EntityKind",
    "EntityRecord",
    "FilePredictor",
    "Location",
    "MetricsResult",
    "PipelineResults",
    "Predictor",
    "RecordFormatError",
    "ResponseParseError",
    "TypeSignature",
    "TypebenchError",
    "__version__",
    "aggregate_metrics",
    "calculate_metrics",
    "generate_detailed_comparison",
    "is_compatible",
    "load_ground_truth",
    "load_records",
    "normalize_type",
    "parse_records",
    "types_match",
]
