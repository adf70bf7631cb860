# domain/run_result.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from domain.http import RequestInfo, ResponseInfo


@dataclass(frozen=True)
class AssertionResult:
    ok: bool
    message: str

    @classmethod
    def passed(cls, message: str) -> "AssertionResult":
        return cls(ok=True, message=message)

    @classmethod
    def failed(cls, message: str) -> "AssertionResult":
        return cls(ok=False, message=message)


@dataclass(frozen=True)
class StepResult:
    name: str
    ok: bool
    request: RequestInfo
    started_at: datetime
    ended_at: datetime
    response: Optional[ResponseInfo] = None
    assertions: List[AssertionResult] = field(default_factory=list)
    extracted: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None

    @property
    def elapsed_ms(self) -> int:
        return int((self.ended_at - self.started_at).total_seconds() * 1000)


@dataclass(frozen=True)
class RunResult:
    run_id: str
    plan_name: str
    ok: bool
    steps: List[StepResult]
    started_at: datetime
    ended_at: datetime
    failed_step: Optional[str] = None

    @property
    def error_message(self) -> Optional[str]:
        for step in self.steps:
            if not step.ok:
                return step.error_message
        return None
