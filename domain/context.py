# domain/context.py
from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

from domain.json_path import to_text


def merge_contexts(*contexts: Optional[Mapping]) -> Dict[str, str]:
    """Merge contexts lowest priority first; later keys override earlier ones."""
    out: Dict[str, str] = {}
    for ctx in contexts:
        if ctx:
            out.update(ctx)
    return out


def normalize_var_key(key: str) -> str:
    key = key.strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        return key[1:-1]
    return key


class VariableContext(Mapping):
    """
    Read-only variable mapping threaded through a run.
    Updates produce a new context; an existing one never changes.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping] = None):
        self._values = MappingProxyType(dict(values or {}))

    @classmethod
    def seed(cls, plan_vars: Optional[Mapping[str, Any]], overrides: Optional[Mapping[str, str]] = None) -> "VariableContext":
        base = {normalize_var_key(str(k)): to_text(v) for k, v in (plan_vars or {}).items()}
        return cls(merge_contexts(base, overrides))

    def with_values(self, updates: Optional[Mapping[str, str]]) -> "VariableContext":
        if not updates:
            return self
        return VariableContext(merge_contexts(self._values, updates))

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableContext({dict(self._values)!r})"
