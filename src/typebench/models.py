"""Data model shared by the matcher, metrics and reports.

Records are immutable and built once per evaluation run. A prediction that
carries a ranked list of guesses and one that carries a single guess share
the same shape: an ordered, non-empty tuple of candidates where the first
one is the most confident. Ground truth always has exactly one candidate.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kind of named program element whose types are compared."""

    FUNCTION = "function"
    VARIABLE = "variable"
    CLASS = "class"
    CLASS_METHOD = "class-method"


VALID_ENTITY_KINDS = [kind.value for kind in EntityKind]


class ComparisonStatus(str, Enum):
    """Classification of one identifier in a detailed comparison."""

    CORRECT = "correct"
    INCORRECT = "incorrect"
    MISSING = "missing"
    EXTRA = "extra"


@dataclass(frozen=True)
class Location:
    """Source position of an entity (1-based line, 0-based column)."""

    line: int = 1
    column: int = 0


@dataclass(frozen=True)
class TypeSignature:
    """Types attached to an entity.

    Attributes:
        return_type: Return type for functions and methods, declared type for
            variables and classes.
        params: Parameter name to type. None means the record places no
            constraint on parameters, which is not the same as an empty
            mapping.
    """

    return_type: str
    params: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.params is not None:
            data["params"] = dict(self.params)
        data["return"] = self.return_type
        return data


@dataclass(frozen=True)
class Candidate:
    """One ranked guess for an entity's types."""

    types: TypeSignature
    confidence: float = 1.0


@dataclass(frozen=True)
class EntityRecord:
    """A typed entity from ground truth or from a predictor.

    Attributes:
        entity: Entity kind.
        name: Identifier; ``"ClassName.methodName"`` for class methods.
        candidates: Ranked guesses, most confident first. Never empty.
        location: Optional source position.
    """

    entity: EntityKind
    name: str
    candidates: tuple[Candidate, ...]
    location: Location | None = None

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError(f"Entity '{self.name}' must have at least one candidate")

    @classmethod
    def single(
        cls,
        entity: EntityKind | str,
        name: str,
        return_type: str,
        params: dict[str, str] | None = None,
        location: Location | None = None,
    ) -> "EntityRecord":
        """Build a record with a single (rank 1) signature."""
        return cls(
            entity=EntityKind(entity),
            name=name,
            candidates=(Candidate(TypeSignature(return_type=return_type, params=params)),),
            location=location,
        )

    @property
    def types(self) -> TypeSignature:
        """The top-ranked signature."""
        return self.candidates[0].types

    @property
    def is_ranked(self) -> bool:
        return len(self.candidates) > 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the JSON record shape."""
        data: dict[str, Any] = {"entity": self.entity.value, "name": self.name}
        if self.location is not None:
            data["location"] = {"line": self.location.line, "column": self.location.column}
        if self.is_ranked:
            data["candidates"] = [
                {"types": c.types.to_dict(), "confidence": c.confidence} for c in self.candidates
            ]
        else:
            data["types"] = self.types.to_dict()
        return data


@dataclass(frozen=True)
class MetricsResult:
    """Accuracy and MRR for one batch of predictions.

    ``total_predictions`` counts every prediction, including those whose name
    is absent from ground truth.
    """

    accuracy: float = 0.0
    mrr: float = 0.0
    total_predictions: int = 0
    correct_predictions: int = 0
    total_reciprocal_rank: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "mrr": self.mrr,
            "totalPredictions": self.total_predictions,
            "correctPredictions": self.correct_predictions,
            "totalReciprocalRank": self.total_reciprocal_rank,
        }


@dataclass(frozen=True)
class AggregateMetrics:
    """Metrics pooled over several files (micro-averaged)."""

    average_accuracy: float = 0.0
    average_mrr: float = 0.0
    total_correct: int = 0
    total_predictions: int = 0
    total_reciprocal_rank: float = 0.0
    files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "averageAccuracy": self.average_accuracy,
            "averageMRR": self.average_mrr,
            "totalCorrect": self.total_correct,
            "totalPredictions": self.total_predictions,
            "totalReciprocalRank": self.total_reciprocal_rank,
            "files": self.files,
        }


@dataclass(frozen=True)
class ComparisonRecord:
    """Outcome for one identifier in a detailed comparison."""

    identifier: str
    status: ComparisonStatus
    ground_truth: EntityRecord | None = None
    predicted: EntityRecord | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "status": self.status.value,
            "groundTruth": self.ground_truth.to_dict() if self.ground_truth else None,
            "predicted": self.predicted.to_dict() if self.predicted else None,
            "details": self.details,
        }
