# application/services/assertion_evaluator.py
from __future__ import annotations

import operator
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from application.services.template_renderer import TemplateRenderError, TemplateRenderer
from domain import json_path
from domain.http import HttpHeaders
from domain.json_path import ABSENT, JsonKind
from domain.plan import Assertion, AssertionType
from domain.run_result import AssertionResult

_STATUS_OPS: Dict[str, Callable[[float, float], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">=": operator.ge,
    "<=": operator.le,
}

# message used when the comparison does not hold: "status 418 < 500"
_STATUS_NEGATION = {"==": "!=", "!=": "==", ">=": "<", "<=": ">"}


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _fmt(value: float) -> str:
    return json_path.format_number(value)


class AssertionEvaluator:
    """
    Evaluate a step's assertions in declared order.
    Evaluation stops at the first failing assertion, so the returned list is
    a prefix of the declared assertions.
    """

    def __init__(self, renderer: Optional[TemplateRenderer] = None):
        self._renderer = renderer or TemplateRenderer()
        self._dispatch = {
            AssertionType.STATUS: self._assert_status,
            AssertionType.HEADER: self._assert_header,
            AssertionType.BODY: self._assert_body,
            AssertionType.JSON: self._assert_json,
        }

    def evaluate(
        self,
        assertions: Sequence[Assertion],
        body: str,
        headers: HttpHeaders,
        status: int,
        ctx: Mapping[str, str],
        body_size: Optional[int] = None,
    ) -> List[AssertionResult]:
        results: List[AssertionResult] = []
        for a in assertions:
            r = self.evaluate_one(a, body, headers, status, ctx, body_size)
            results.append(r)
            if not r.ok:
                break
        return results

    def evaluate_one(
        self,
        a: Assertion,
        body: str,
        headers: HttpHeaders,
        status: int,
        ctx: Mapping[str, str],
        body_size: Optional[int] = None,
    ) -> AssertionResult:
        """
        `body_size` is the byte length of the raw response content; when it is
        not given, the UTF-8 length of `body` is used.
        """
        kind = a.kind
        if kind is None:
            return AssertionResult.failed(f"unknown assertion type {a.type}")

        expect = a.expect
        if isinstance(expect, str) and "{{" in expect:
            try:
                expect = self._renderer.render_str(expect, ctx)
            except TemplateRenderError as e:
                return AssertionResult.failed(f"expect template: {e}")

        return self._dispatch[kind](a, expect, body=body, headers=headers, status=status, body_size=body_size)

    # --- status ---

    def _assert_status(self, a: Assertion, expect: Any, *, status: int, **_: Any) -> AssertionResult:
        op = _STATUS_OPS.get(a.op)
        if op is None:
            return AssertionResult.failed(f"unknown status op {a.op}")
        expected = _to_number(expect)
        if expected is None:
            return AssertionResult.failed(f"status expectation {expect!r} is not a number")
        if op(float(status), expected):
            return AssertionResult.passed(f"status {a.op} {_fmt(expected)}")
        return AssertionResult.failed(f"status {status} {_STATUS_NEGATION[a.op]} {_fmt(expected)}")

    # --- header ---

    def _assert_header(self, a: Assertion, expect: Any, *, headers: HttpHeaders, **_: Any) -> AssertionResult:
        name = a.path or a.name
        if not name:
            return AssertionResult.failed("header name missing")
        values = headers.get_all(name)
        want = json_path.to_text(expect)

        if a.op == "exists":
            if values:
                return AssertionResult.passed(f"header {name} exists")
            return AssertionResult.failed(f"header {name} not found")
        if a.op == "contains":
            if any(want in v for v in values):
                return AssertionResult.passed(f"header {name} contains {want}")
            return AssertionResult.failed(f"header {name} does not contain {want}")
        if a.op == "==":
            if values and values[0] == want:
                return AssertionResult.passed(f"header {name} == {want}")
            return AssertionResult.failed(f"header {name} value {values} != {want}")
        if a.op == "!=":
            if not values or values[0] != want:
                return AssertionResult.passed(f"header {name} != {want}")
            return AssertionResult.failed(f"header {name} equals {want}")
        return AssertionResult.failed(f"unknown header op {a.op}")

    # --- body ---

    def _assert_body(
        self, a: Assertion, expect: Any, *, body: str, body_size: Optional[int] = None, **_: Any
    ) -> AssertionResult:
        if a.op == "contains":
            want = json_path.to_text(expect)
            if want in body:
                return AssertionResult.passed(f"body contains {want}")
            return AssertionResult.failed(f"body does not contain {want}")

        if a.op == "regex":
            pattern = json_path.to_text(expect)
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                return AssertionResult.failed(f"invalid regex: {e}")
            if compiled.search(body):
                return AssertionResult.passed(f"body matches {pattern}")
            return AssertionResult.failed(f"body does not match {pattern}")

        if a.op in ("len_gt", "len_eq"):
            expected = _to_number(expect)
            if expected is None:
                return AssertionResult.failed(f"body length expectation {expect!r} is not a number")
            want_len = int(expected)
            size = len(body.encode("utf-8")) if body_size is None else body_size
            if a.op == "len_gt":
                if size > want_len:
                    return AssertionResult.passed(f"body length > {want_len}")
                return AssertionResult.failed(f"body length {size} <= {want_len}")
            if size == want_len:
                return AssertionResult.passed(f"body length == {want_len}")
            return AssertionResult.failed(f"body length {size} != {want_len}")

        return AssertionResult.failed(f"unknown body op {a.op}")

    # --- json ---

    def _assert_json(self, a: Assertion, expect: Any, *, body: str, **_: Any) -> AssertionResult:
        if a.op not in ("exists", "==", "!=", "contains", "gt", "lt"):
            return AssertionResult.failed(f"unknown json op {a.op}")
        try:
            doc = json_path.parse(body)
        except json_path.JsonPathError:
            return AssertionResult.failed("response body is not valid JSON")

        path = a.path or ""
        actual = json_path.resolve(doc, path)

        if a.op == "exists":
            if actual is not ABSENT and actual is not None:
                return AssertionResult.passed(f"json {path} exists")
            return AssertionResult.failed(f"json path {path} does not exist")

        if actual is ABSENT:
            return AssertionResult.failed(f"json path {path} does not exist")

        if a.op == "contains":
            have, want = json_path.to_text(actual), json_path.to_text(expect)
            if want in have:
                return AssertionResult.passed(f"json {path} contains {want}")
            return AssertionResult.failed(f"json {path} value {have} does not contain {want}")

        if a.op in ("gt", "lt"):
            return self._compare_order(a.op, path, actual, expect)

        return self._compare_equality(a.op, path, actual, expect)

    def _compare_order(self, op: str, path: str, actual: Any, expect: Any) -> AssertionResult:
        if not json_path.is_number(actual):
            return AssertionResult.failed(f"json {path} not a number")
        expected = _to_number(expect)
        if expected is None:
            return AssertionResult.failed(f"json {path} expectation {expect!r} is not a number")
        have = float(actual)
        if op == "gt":
            if have > expected:
                return AssertionResult.passed(f"json {path} {_fmt(have)} > {_fmt(expected)}")
            return AssertionResult.failed(f"json {path} {_fmt(have)} <= {_fmt(expected)}")
        if have < expected:
            return AssertionResult.passed(f"json {path} {_fmt(have)} < {_fmt(expected)}")
        return AssertionResult.failed(f"json {path} {_fmt(have)} >= {_fmt(expected)}")

    def _compare_equality(self, op: str, path: str, actual: Any, expect: Any) -> AssertionResult:
        if actual is None:
            return AssertionResult.failed(f"json path {path} not found")

        kind = json_path.classify(actual)
        want_equal = op == "=="

        if isinstance(expect, bool):
            if kind not in (JsonKind.TRUE, JsonKind.FALSE):
                return AssertionResult.failed(f"json {path} not a bool")
            if (actual == expect) == want_equal:
                return AssertionResult.passed(f"json {path} bool comparison pass")
            return AssertionResult.failed(
                f"json {path} bool comparison fail (expect {json_path.to_text(expect)}, got {json_path.to_text(actual)})"
            )

        if isinstance(expect, (int, float)):
            if kind is not JsonKind.NUMBER:
                return AssertionResult.failed(f"json {path} not a number")
            if (float(actual) == float(expect)) == want_equal:
                return AssertionResult.passed(f"json {path} number comparison pass")
            return AssertionResult.failed(
                f"json {path} number comparison fail (expect {_fmt(expect)}, got {_fmt(actual)})"
            )

        label = "string" if isinstance(expect, str) else "stringified"
        have, want = json_path.to_text(actual), json_path.to_text(expect)
        if (have == want) == want_equal:
            return AssertionResult.passed(f"json {path} {label} comparison pass")
        return AssertionResult.failed(f"json {path} {label} comparison fail (expect {want}, got {have})")
