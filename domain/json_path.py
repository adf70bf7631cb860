# domain/json_path.py
"""
Minimal JSON path resolution over already-decoded JSON values.

Path syntax:
  data.user.id
  items[0].name
  matrix[1][0]
  [2].id          (root is an array)

A missing key, an index on a non-array, a bare field name at an array
position, or an out-of-range index resolves to ABSENT instead of raising.
"""
from __future__ import annotations

import json
import re
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Tuple


class JsonPathError(Exception):
    pass


class _Absent:
    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class JsonKind(str, Enum):
    NULL = "null"
    TRUE = "true"
    FALSE = "false"
    NUMBER = "number"
    STRING = "string"
    COMPOSITE = "composite"


_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[-?\d+\])*)$")
_INDEX = re.compile(r"\[(-?\d+)\]")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def parse(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise JsonPathError(f"invalid JSON: {e}") from e


def valid(text: str) -> bool:
    try:
        parse(text)
    except JsonPathError:
        return False
    return True


def _split_segment(segment: str) -> Optional[Tuple[str, List[int]]]:
    m = _SEGMENT.match(segment)
    if not m:
        return None
    name, brackets = m.group(1), m.group(2)
    indices = [int(i) for i in _INDEX.findall(brackets)]
    if not name and not indices:
        return None
    return name, indices


def _index(node: Any, idx: int) -> Any:
    if not isinstance(node, list):
        return ABSENT
    if idx < 0 or idx >= len(node):
        return ABSENT
    return node[idx]


def resolve(value: Any, path: str) -> Any:
    if not path:
        return ABSENT

    cur = value
    for segment in path.split("."):
        parts = _split_segment(segment)
        if parts is None:
            return ABSENT
        name, indices = parts

        if name:
            # field lookup only applies to objects
            if not isinstance(cur, dict) or name not in cur:
                return ABSENT
            cur = cur[name]

        for idx in indices:
            cur = _index(cur, idx)
            if cur is ABSENT:
                return ABSENT
    return cur


def classify(value: Any) -> Optional[JsonKind]:
    if value is ABSENT:
        return None
    if value is None:
        return JsonKind.NULL
    if value is True:
        return JsonKind.TRUE
    if value is False:
        return JsonKind.FALSE
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    return JsonKind.COMPOSITE


def is_number(value: Any) -> bool:
    return classify(value) is JsonKind.NUMBER


def format_number(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    return str(value)


def to_text(value: Any) -> str:
    """Canonical string form used for extraction and stringified comparisons."""
    kind = classify(value)
    if kind is None or kind is JsonKind.NULL:
        return ""
    if kind is JsonKind.TRUE:
        return "true"
    if kind is JsonKind.FALSE:
        return "false"
    if kind is JsonKind.NUMBER:
        return format_number(value)
    if kind is JsonKind.STRING:
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    # YAML-decoded plan values can carry dates and other scalars
    return str(value)
