"""Signature-level matching between a predicted entity and ground truth."""

from .compatibility import is_compatible
from .models import TypeSignature


def types_match(predicted: TypeSignature, ground_truth: TypeSignature) -> bool:
    """Check whether a predicted signature matches a ground-truth signature.

    The return types must be compatible. When both sides carry parameters,
    the parameter names must be the same set and every parameter type must be
    compatible. A missing ``params`` on either side skips the parameter check.

    Args:
        predicted: Predicted signature.
        ground_truth: Ground-truth signature.

    Returns:
        True if the signatures match.
    """
    if predicted.return_type and ground_truth.return_type:
        if not is_compatible(predicted.return_type, ground_truth.return_type):
            return False

    if predicted.params is not None and ground_truth.params is not None:
        if set(predicted.params) != set(ground_truth.params):
            return False
        for name, expected in ground_truth.params.items():
            if not is_compatible(predicted.params[name], expected):
                return False

    return True


def describe_type_differences(predicted: TypeSignature, ground_truth: TypeSignature) -> str:
    """Describe every way a predicted signature fails to match ground truth.

    Args:
        predicted: Predicted signature.
        ground_truth: Ground-truth signature.

    Returns:
        Differences joined by ``"; "``, or an empty string if none.
    """
    differences: list[str] = []

    if predicted.return_type and ground_truth.return_type:
        if not is_compatible(predicted.return_type, ground_truth.return_type):
            differences.append(
                f"Return type: predicted '{predicted.return_type}' "
                f"is not compatible with '{ground_truth.return_type}'"
            )

    if predicted.params is not None and ground_truth.params is not None:
        for name, expected in ground_truth.params.items():
            if name not in predicted.params:
                differences.append(f"Missing parameter: {name}")
            elif not is_compatible(predicted.params[name], expected):
                differences.append(
                    f"Parameter {name}: predicted '{predicted.params[name]}' "
                    f"is not compatible with '{expected}'"
                )
        for name in predicted.params:
            if name not in ground_truth.params:
                differences.append(f"Unexpected parameter: {name}")

    return "; ".join(differences)
