"""Structural compatibility between a predicted and a ground-truth type.

The check is directional: ``is_compatible(predicted, ground_truth)`` asks
whether the predicted type satisfies the ground-truth type, following the
spirit of TypeScript's structural typing:

- object literals use width subtyping (extra predicted members are fine,
  missing required members are not, optional members may be absent)
- a ground-truth union is satisfied by any one of its members
- arrays compare their element types
- ``any`` is a wildcard on both sides, ``unknown`` only on the predicted side
"""

from typing import NamedTuple

from .normalizer import find_closing, normalize_type, split_top_level

ARRAY_SUFFIX = "array"


class PropertyType(NamedTuple):
    """Type of a single object-literal member."""

    type: str
    optional: bool = False


def is_compatible(predicted: str, ground_truth: str) -> bool:
    """Check whether ``predicted`` satisfies ``ground_truth``.

    Args:
        predicted: Predicted type string.
        ground_truth: Ground-truth type string.

    Returns:
        True if the predicted type is structurally compatible. Types nested
        too deeply to walk fall back to comparing their normalized text.
    """
    try:
        return _compatible(predicted, ground_truth)
    except RecursionError:
        return normalize_type(predicted) == normalize_type(ground_truth)


def _compatible(predicted: str, ground_truth: str) -> bool:
    norm_predicted = unwrap_parens(normalize_type(predicted))
    norm_ground_truth = unwrap_parens(normalize_type(ground_truth))

    if norm_predicted == norm_ground_truth:
        return True

    if is_object_type(norm_predicted) and is_object_type(norm_ground_truth):
        return object_types_compatible(norm_predicted, norm_ground_truth)

    if is_union_type(norm_ground_truth):
        members = split_union(ground_truth)
        if len(members) < 2:
            # raw text too malformed to split the same way
            members = split_union(norm_ground_truth)
        return any(_compatible(predicted, member) for member in members)

    if is_array_type(norm_predicted) and is_array_type(norm_ground_truth):
        return _compatible(
            array_element_type(norm_predicted),
            array_element_type(norm_ground_truth),
        )

    return basic_types_compatible(norm_predicted, norm_ground_truth)


def object_types_compatible(predicted: str, ground_truth: str) -> bool:
    """Width-subtyping check between two object-literal type strings."""
    predicted_props = parse_object_type(predicted)
    ground_truth_props = parse_object_type(ground_truth)

    for name, expected in ground_truth_props.items():
        actual = predicted_props.get(name)
        if actual is None:
            if not expected.optional:
                return False
            continue
        if not _compatible(actual.type, expected.type):
            return False
    return True


def basic_types_compatible(predicted: str, ground_truth: str) -> bool:
    """Compatibility of two normalized non-structured types."""
    if predicted == "any" or ground_truth == "any":
        return True
    # unknown is only absorbing when it is the guess
    if predicted == "unknown":
        return True
    return predicted == ground_truth


def parse_object_type(object_type: str) -> dict[str, PropertyType]:
    """Parse an object-literal type string into its members.

    Accepts raw or normalized text; members may be separated by ``,`` or
    ``;``. Entries without a ``:`` are skipped, and a trailing ``?`` on a
    member name marks it optional.

    Args:
        object_type: Text such as ``"{ name: string; age?: number }"``.

    Returns:
        Ordered mapping of member name to its type.
    """
    text = object_type.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]

    props: dict[str, PropertyType] = {}
    for member in split_top_level(text, ",;"):
        member = member.strip()
        if not member:
            continue
        colon = member.find(":")
        if colon == -1:
            continue
        name = member[:colon].strip()
        type_text = member[colon + 1 :].strip()
        optional = name.endswith("?")
        if optional:
            name = name[:-1].strip()
        props[name] = PropertyType(type=type_text, optional=optional)
    return props


def is_object_type(type_string: str) -> bool:
    """True when the whole string is a single ``{...}`` literal."""
    return type_string.startswith("{") and find_closing(type_string, 0) == len(type_string) - 1


def is_union_type(type_string: str) -> bool:
    return len(split_top_level(type_string, "|")) > 1


def split_union(type_string: str) -> list[str]:
    """Split a (raw or normalized) union type into its member types."""
    text = unwrap_parens(type_string.strip())
    return [member.strip() for member in split_top_level(text, "|") if member.strip()]


def is_array_type(type_string: str) -> bool:
    return type_string.endswith(ARRAY_SUFFIX)


def array_element_type(type_string: str) -> str:
    """Strip the array suffix from a normalized array type."""
    return type_string[: -len(ARRAY_SUFFIX)]


def unwrap_parens(type_string: str) -> str:
    """Remove parentheses that wrap the entire expression."""
    text = type_string
    while text.startswith("(") and find_closing(text, 0) == len(text) - 1:
        text = text[1:-1].strip()
    return text
