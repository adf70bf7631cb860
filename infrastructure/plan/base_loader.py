# infrastructure/plan/base_loader.py
"""
Build Plan domain objects from decoded YAML/JSON documents.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from domain.exceptions import ValidationError
from domain.plan import (
    DEFAULT_TIMEOUT_MS,
    Assertion,
    ExtractDefinition,
    Plan,
    PlanStep,
    RequestBody,
    RequestSpec,
)


class PlanLoadError(Exception):
    pass


def _mapping(data: Any, label: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{label} must be a mapping")
    return data


class PlanLoaderBase(ABC):
    """Decode a plan file and map it onto the Plan model."""

    def load_from_file(self, path: Union[str, Path]) -> Plan:
        p = Path(path)
        if not p.exists():
            raise PlanLoadError(f"Plan file not found: {path}")

        try:
            data = self._load_file(p)
        except OSError as e:
            raise PlanLoadError(f"read plan: {e}") from e
        except ValueError as e:
            # yaml.YAMLError is converted by the YAML loader; json errors are ValueErrors
            raise PlanLoadError(f"parse plan: {e}") from e

        if data is None:
            raise PlanLoadError(f"Plan file is empty: {path}")
        if not isinstance(data, dict):
            raise PlanLoadError(f"Plan file is invalid: {path}")

        try:
            return self.load_from_dict(data)
        except (ValidationError, TypeError, ValueError) as e:
            raise PlanLoadError(f"parse plan: {e}") from e

    @abstractmethod
    def _load_file(self, path: Path) -> Any:
        ...

    def load_from_dict(self, data: Dict[str, Any]) -> Plan:
        steps = self._load_steps(data.get("steps") or [])
        if not steps:
            raise PlanLoadError("plan has no steps")

        return Plan(
            name=str(data.get("name") or ""),
            base_url=str(data.get("base_url") or ""),
            vars=_mapping(data.get("vars"), "vars"),
            steps=steps,
        )

    def _load_steps(self, steps_data: Any) -> List[PlanStep]:
        if not isinstance(steps_data, list):
            raise ValidationError("steps must be a list")
        return [self._load_step(i, s) for i, s in enumerate(steps_data)]

    def _load_step(self, index: int, data: Any) -> PlanStep:
        data = _mapping(data, f"steps[{index}]")
        name = str(data.get("name") or f"step-{index + 1}")

        return PlanStep(
            name=name,
            request=self._load_request(_mapping(data.get("request"), f"{name}.request")),
            extract=self._load_extract(_mapping(data.get("extract"), f"{name}.extract")),
            assertions=self._load_assertions(data.get("assert") or [], name),
        )

    def _load_request(self, data: Dict[str, Any]) -> RequestSpec:
        timeout_ms = data.get("timeout_ms") or DEFAULT_TIMEOUT_MS
        return RequestSpec(
            method=str(data.get("method") or "GET"),
            url=str(data.get("url") or ""),
            headers={str(k): v for k, v in _mapping(data.get("headers"), "request.headers").items()},
            query={str(k): v for k, v in _mapping(data.get("query"), "request.query").items()},
            body=self._load_body(data.get("body")),
            timeout_ms=int(timeout_ms),
        )

    def _load_body(self, data: Any) -> Optional[RequestBody]:
        if data is None:
            return None
        data = _mapping(data, "request.body")
        raw = data.get("raw")
        form = data.get("form")
        return RequestBody(
            raw=None if raw is None else str(raw),
            json=data.get("json"),
            form=None if form is None else {str(k): v for k, v in _mapping(form, "request.body.form").items()},
        )

    def _load_extract(self, data: Dict[str, Any]) -> Dict[str, ExtractDefinition]:
        out: Dict[str, ExtractDefinition] = {}
        for name, item in data.items():
            item = _mapping(item, f"extract.{name}")
            group = item.get("group")
            out[str(name)] = ExtractDefinition(
                source=str(item.get("from") or ""),
                path=str(item.get("path") or ""),
                group=None if group is None else int(group),
            )
        return out

    def _load_assertions(self, items: Any, step_name: str) -> List[Assertion]:
        if not isinstance(items, list):
            raise ValidationError(f"{step_name}.assert must be a list")
        out: List[Assertion] = []
        for i, item in enumerate(items):
            item = _mapping(item, f"{step_name}.assert[{i}]")
            out.append(
                Assertion(
                    type=str(item.get("type") or ""),
                    op=str(item.get("op") or ""),
                    expect=item.get("expect"),
                    name=item.get("name"),
                    path=item.get("path"),
                )
            )
        return out
