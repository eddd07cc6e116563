"""Canonical form for TypeScript type strings.

Two type expressions that differ only in formatting should compare equal as
strings once normalized. The rewrite rules, applied in order, are:

1. lowercase everything
2. drop all whitespace
3. ``T[]`` becomes ``Tarray``
4. ``Array<T>`` becomes ``Tarray``
5. ``{}`` becomes ``object``
6. ``Promise<T>`` collapses to ``promise``
7. ``;`` member separators become ``,``
8. members of every object literal are sorted

Normalization never raises and is idempotent. Unbalanced brackets are left
as they are.
"""

import re
from collections.abc import Callable, Iterable

_WHITESPACE_RE = re.compile(r"\s+")
_IDENTIFIER_CHAR_RE = re.compile(r"[a-z0-9_$]")

_OPENING = "{<(["
_CLOSING = "}>)]"


def normalize_type(type_string: str) -> str:
    """Normalize a type string for comparison.

    Args:
        type_string: Raw type expression, e.g. ``"{ b: number; a: string }"``.

    Returns:
        Canonical string, e.g. ``"{a:string,b:number}"``.
    """
    compact = _WHITESPACE_RE.sub("", type_string.lower())
    try:
        text = compact.replace("[]", "array")
        text = _rewrite_generic(text, "array", _array_suffix)
        text = text.replace("{}", "object")
        text = _rewrite_generic(text, "promise", lambda _inner: "promise")
        text = text.replace(";", ",")
        return _sort_object_members(text)
    except RecursionError:
        # pathologically deep nesting is compared as lowercased, whitespace-free text
        return compact


def split_top_level(text: str, separators: Iterable[str] = ",") -> list[str]:
    """Split text on separators that are not nested inside any brackets.

    Brackets are ``{}``, ``<>``, ``()`` and ``[]``. The ``>`` of an arrow
    (``=>``) does not close anything.

    Args:
        text: Text to split.
        separators: Single-character separators to split on.

    Returns:
        List of parts (possibly empty strings), in order.
    """
    seps = set(separators)
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch in _OPENING:
            depth += 1
        elif ch in _CLOSING:
            if ch == ">" and i > 0 and text[i - 1] == "=":
                continue
            depth = max(depth - 1, 0)
        elif ch in seps and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def find_closing(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at ``open_index``.

    Only the bracket kind found at ``open_index`` is counted. Returns -1 when
    the bracket is never closed.
    """
    opener = text[open_index]
    closer = _CLOSING[_OPENING.index(opener)]
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            if closer == ">" and i > 0 and text[i - 1] == "=":
                continue
            depth -= 1
            if depth == 0:
                return i
    return -1


def _array_suffix(inner: str) -> str:
    # Keep a union element grouped so the suffix binds to the whole union.
    if len(split_top_level(inner, "|")) > 1:
        return f"({inner})array"
    return f"{inner}array"


def _rewrite_generic(text: str, name: str, build: Callable[[str], str]) -> str:
    """Replace every ``name<...>`` with ``build(inner)``, innermost first."""
    token = f"{name}<"
    search_from = 0
    while True:
        start = text.find(token, search_from)
        if start == -1:
            return text
        if start > 0 and _IDENTIFIER_CHAR_RE.match(text[start - 1]):
            search_from = start + 1
            continue
        end = find_closing(text, start + len(name))
        if end == -1:
            return text
        inner = _rewrite_generic(text[start + len(token) : end], name, build)
        replacement = build(inner)
        text = text[:start] + replacement + text[end + 1 :]
        # the replacement may now be followed by another generic of the same name
        search_from = start


def _sort_object_members(text: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "{":
            end = find_closing(text, i)
            if end == -1:
                out.append(text[i:])
                break
            out.append(_canonical_object(text[i + 1 : end]))
            i = end + 1
        else:
            out.append(text[i])
            i += 1
    return "".join(out)


def _canonical_object(body: str) -> str:
    members = sorted(
        member
        for member in (_sort_object_members(m.strip()) for m in split_top_level(body, ","))
        if member
    )
    if not members:
        return "object"
    return "{" + ",".join(members) + "}"
