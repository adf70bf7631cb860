# domain/plan.py
"""
Plan domain model
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_REGEX_GROUP = 1


class AssertionType(str, Enum):
    STATUS = "status"
    HEADER = "header"
    BODY = "body"
    JSON = "json"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["AssertionType"]:
        try:
            return cls((raw or "").lower())
        except ValueError:
            return None


class ExtractSource(str, Enum):
    JSON = "json"
    HEADER = "header"
    REGEX = "regex"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["ExtractSource"]:
        try:
            return cls((raw or "").lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class RequestBody:
    raw: Optional[str] = None
    json: Any = None
    form: Optional[Dict[str, Any]] = None

    def variant_count(self) -> int:
        return sum(1 for v in (self.raw or None, self.json, self.form) if v is not None)


@dataclass(frozen=True)
class RequestSpec:
    method: str = "GET"
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Optional[RequestBody] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass(frozen=True)
class ExtractDefinition:
    source: str
    path: str
    group: Optional[int] = None  # None or 0 => DEFAULT_REGEX_GROUP

    @property
    def kind(self) -> Optional[ExtractSource]:
        return ExtractSource.parse(self.source)


@dataclass(frozen=True)
class Assertion:
    type: str
    op: str
    expect: Any = None
    name: Optional[str] = None
    path: Optional[str] = None

    @property
    def kind(self) -> Optional[AssertionType]:
        return AssertionType.parse(self.type)


@dataclass(frozen=True)
class PlanStep:
    name: str
    request: RequestSpec
    extract: Dict[str, ExtractDefinition] = field(default_factory=dict)
    assertions: List[Assertion] = field(default_factory=list)


@dataclass(frozen=True)
class Plan:
    """
    Plan aggregate root
    """
    name: str
    steps: List[PlanStep]
    base_url: str = ""
    vars: Dict[str, Any] = field(default_factory=dict)
