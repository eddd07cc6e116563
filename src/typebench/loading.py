"""Loading and shape validation of ground-truth and prediction records.

Records arrive as already-deserialized JSON (a list of objects). A record is
either single-guess::

    {"entity": "function", "name": "add",
     "types": {"params": {"a": "number"}, "return": "number"}}

or ranked, with ``types.return`` given as a list (parameters shared by every
guess)::

    {"entity": "variable", "name": "count", "types": {"return": ["number", "string"]}}

or with an explicit candidate list::

    {"entity": "function", "name": "add",
     "candidates": [{"types": {"return": "number"}, "confidence": 0.9}, ...]}

Every shape is resolved here into ``EntityRecord.candidates`` so the matcher
only ever sees one shape. Validation is all-or-nothing: the first malformed
record raises ``RecordFormatError`` and nothing is returned.
"""

import json
import logging
import re
from collections import Counter
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from .errors import RecordFormatError, ResponseParseError
from .models import VALID_ENTITY_KINDS, Candidate, EntityKind, EntityRecord, Location, TypeSignature

logger = logging.getLogger(__name__)

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

# Limit on how far extract_json_payload shrinks a candidate from its end.
_MAX_TRAILING_GARBAGE = 10000

_KIND_LIST = ", ".join(f"'{kind}'" for kind in VALID_ENTITY_KINDS)


def parse_records(data: Any, *, ranked_allowed: bool = True) -> list[EntityRecord]:
    """Validate deserialized records and convert them to EntityRecord.

    Args:
        data: Parsed JSON/YAML value; must be a list of record objects.
        ranked_allowed: Whether ranked records (``candidates`` or a list in
            ``types.return``) are accepted. Ground truth passes False.

    Returns:
        Records in input order.

    Raises:
        RecordFormatError: If the data or any record has an invalid shape.
    """
    if not isinstance(data, list):
        raise RecordFormatError("Records must be an array")
    return [_parse_record(item, index, ranked_allowed) for index, item in enumerate(data)]


def _parse_record(item: Any, index: int, ranked_allowed: bool) -> EntityRecord:
    if not isinstance(item, dict):
        raise RecordFormatError(
            f"Invalid item at index {index}: must be an object", index=index
        )

    entity = item.get("entity")
    if entity not in VALID_ENTITY_KINDS:
        raise RecordFormatError(
            f"Invalid entity at index {index}: must be one of {_KIND_LIST}",
            index=index,
            field="entity",
        )

    name = item.get("name")
    if not isinstance(name, str) or not name:
        raise RecordFormatError(
            f"Invalid name at index {index}: must be a non-empty string",
            index=index,
            field="name",
        )

    location = _parse_location(item.get("location"), index)

    if "candidates" in item:
        if not ranked_allowed:
            raise RecordFormatError(
                f"Invalid candidates at index {index}: ranked candidates are not allowed here",
                index=index,
                field="candidates",
            )
        candidates = _parse_candidates(item["candidates"], index)
    else:
        candidates = _parse_types(item.get("types"), index, ranked_allowed)

    return EntityRecord(
        entity=EntityKind(entity),
        name=name,
        candidates=candidates,
        location=location,
    )


def _parse_location(raw: Any, index: int) -> Location | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RecordFormatError(
            f"Invalid location at index {index}: must be an object",
            index=index,
            field="location",
        )
    line = raw.get("line")
    column = raw.get("column")
    return Location(
        line=line if isinstance(line, int) else 1,
        column=column if isinstance(column, int) else 0,
    )


def _parse_params(raw: Any, index: int, field: str) -> dict[str, str] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        raise RecordFormatError(
            f"Invalid params at index {index}: must be an object mapping names to type strings",
            index=index,
            field=field,
        )
    return dict(raw)


def _parse_types(raw: Any, index: int, ranked_allowed: bool) -> tuple[Candidate, ...]:
    if not isinstance(raw, dict):
        raise RecordFormatError(
            f"Invalid types at index {index}: must be an object",
            index=index,
            field="types",
        )

    params = _parse_params(raw.get("params"), index, "types.params")
    returns = raw.get("return")

    if isinstance(returns, str) and returns:
        return (Candidate(TypeSignature(return_type=returns, params=params)),)

    if isinstance(returns, list) and ranked_allowed:
        if not returns or not all(isinstance(r, str) and r for r in returns):
            raise RecordFormatError(
                f"Invalid return type at index {index}: "
                "ranked return types must be a non-empty list of strings",
                index=index,
                field="types.return",
            )
        return tuple(Candidate(TypeSignature(return_type=r, params=params)) for r in returns)

    raise RecordFormatError(
        f"Invalid return type at index {index}: must be a non-empty string",
        index=index,
        field="types.return",
    )


def _parse_candidates(raw: Any, index: int) -> tuple[Candidate, ...]:
    if not isinstance(raw, list) or not raw:
        raise RecordFormatError(
            f"Invalid candidates at index {index}: must be a non-empty array",
            index=index,
            field="candidates",
        )

    candidates: list[Candidate] = []
    for rank, candidate in enumerate(raw):
        where = f"index {index}, candidate {rank}"
        if not isinstance(candidate, dict):
            raise RecordFormatError(
                f"Invalid candidate at {where}: must be an object",
                index=index,
                field="candidates",
            )
        types = candidate.get("types")
        if not isinstance(types, dict):
            raise RecordFormatError(
                f"Invalid candidate types at {where}: must be an object",
                index=index,
                field="candidates.types",
            )
        returns = types.get("return")
        if not isinstance(returns, str) or not returns:
            raise RecordFormatError(
                f"Invalid candidate return type at {where}: must be a non-empty string",
                index=index,
                field="candidates.types.return",
            )
        params = _parse_params(types.get("params"), index, "candidates.types.params")
        confidence = candidate.get("confidence")
        candidates.append(
            Candidate(
                types=TypeSignature(return_type=returns, params=params),
                confidence=float(confidence) if isinstance(confidence, (int, float)) else 1.0,
            )
        )
    return tuple(candidates)


def extract_json_payload(text: str) -> Any:
    """Best-effort extraction of the JSON value in a predictor response.

    Tries the whole text, then each fenced code block, then everything from
    the first ``[`` or ``{`` onward, shrinking from the end until it parses.

    Args:
        text: Raw response text.

    Returns:
        The parsed JSON value.

    Raises:
        ResponseParseError: If no JSON value can be found.
    """
    s = text.strip()
    if not s:
        raise ResponseParseError("Empty response")

    try:
        return json.loads(s)
    except json.JSONDecodeError:
        pass

    for block in _FENCED_BLOCK_RE.findall(s):
        try:
            return json.loads(block.strip())
        except json.JSONDecodeError:
            continue

    starts = [i for i in (s.find("["), s.find("{")) if i != -1]
    if not starts:
        raise ResponseParseError("No JSON start found in response")
    candidate = s[min(starts) :]

    for end in range(len(candidate), max(len(candidate) - _MAX_TRAILING_GARBAGE, 0), -1):
        try:
            return json.loads(candidate[:end])
        except json.JSONDecodeError:
            continue

    raise ResponseParseError("Failed to parse JSON from response")


def read_payload(path: Path) -> Any:
    """Read a JSON, YAML or raw-response file into a Python value.

    Raises:
        FileNotFoundError: If the file does not exist.
        RecordFormatError: If a .json/.yaml file cannot be parsed.
        ResponseParseError: If a text file holds no JSON.
    """
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: {path}")

    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise RecordFormatError(f"Invalid JSON in {path}: {e}") from e
    if suffix in (".yaml", ".yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise RecordFormatError(f"Invalid YAML in {path}: {e}") from e
    return extract_json_payload(text)


def load_records(path: str | Path, *, ranked_allowed: bool = True) -> list[EntityRecord]:
    """Load and validate records from a file.

    Args:
        path: ``.json`` or ``.yaml``/``.yml`` file, or a text file holding a
            raw predictor response.
        ranked_allowed: Passed to ``parse_records``.

    Returns:
        Validated records.
    """
    p = Path(path)
    records = parse_records(read_payload(p), ranked_allowed=ranked_allowed)
    logger.debug("Loaded %d records from %s", len(records), p)
    return records


def load_ground_truth(path: str | Path) -> list[EntityRecord]:
    """Load ground truth, warning about duplicate names (the last one wins)."""
    records = load_records(path, ranked_allowed=False)
    duplicates = find_duplicate_names(records)
    if duplicates:
        logger.warning(
            "Ground truth %s has duplicate names, keeping the last of each: %s",
            path,
            ", ".join(duplicates),
        )
    return records


def find_duplicate_names(records: Iterable[EntityRecord]) -> list[str]:
    """Return the sorted names that occur more than once."""
    counts = Counter(record.name for record in records)
    return sorted(name for name, count in counts.items() if count > 1)
