# application/executor/plan_executor.py
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from application.ports.http_client import TransportError
from application.services.assertion_evaluator import AssertionEvaluator
from application.services.execution_deps import ExecutionDeps
from application.services.extractor import ExtractionError, Extractor
from application.services.request_preparer import RequestPreparer, RequestRenderError
from application.services.template_renderer import TemplateRenderer
from domain.context import VariableContext
from domain.http import ResponseInfo
from domain.plan import Plan, PlanStep
from domain.run_result import RunResult, StepResult


@dataclass(frozen=True)
class RunOptions:
    vars: Dict[str, str] = field(default_factory=dict)
    insecure: bool = False
    run_id: str = ""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PlanExecutor:
    """
    Run a plan's steps in order, threading the variable context from one
    step to the next and halting at the first failing step.
    """

    def __init__(
        self,
        preparer: Optional[RequestPreparer] = None,
        evaluator: Optional[AssertionEvaluator] = None,
        extractor: Optional[Extractor] = None,
    ):
        renderer = TemplateRenderer()
        self._preparer = preparer or RequestPreparer(renderer)
        self._evaluator = evaluator or AssertionEvaluator(renderer)
        self._extractor = extractor or Extractor()

    def execute(self, plan: Plan, deps: ExecutionDeps, options: Optional[RunOptions] = None) -> RunResult:
        options = options or RunOptions()
        run_id = options.run_id or uuid.uuid4().hex

        # run_id を bind して、以後のログに自動付与
        deps = deps.with_logger(deps.logger.bind(run_id=run_id))

        started_at = _now()
        ctx = VariableContext.seed(plan.vars, options.vars)
        deps.logger.info("run.start", plan=plan.name, steps=len(plan.steps), vars=sorted(ctx))

        results: List[StepResult] = []
        failed_step: Optional[str] = None

        for index, step in enumerate(plan.steps):
            deps.logger.info("step.start", step=step.name, index=index)
            t0 = time.perf_counter()

            result, ctx = self._execute_step(step, ctx, deps, options)
            results.append(result)

            deps.logger.info(
                "step.end",
                step=step.name,
                ok=result.ok,
                elapsed_ms=int((time.perf_counter() - t0) * 1000),
            )

            if not result.ok:
                failed_step = step.name
                break

        run = RunResult(
            run_id=run_id,
            plan_name=plan.name,
            ok=failed_step is None,
            steps=results,
            started_at=started_at,
            ended_at=_now(),
            failed_step=failed_step,
        )
        deps.logger.info("run.end", ok=run.ok, failed_step=failed_step, executed=len(results))
        return run

    def _execute_step(
        self,
        step: PlanStep,
        ctx: VariableContext,
        deps: ExecutionDeps,
        options: RunOptions,
    ) -> Tuple[StepResult, VariableContext]:
        started_at = _now()

        def failed(request, message: str, response: Optional[ResponseInfo] = None, assertions=None) -> StepResult:
            deps.logger.error("step.failed", step=step.name, error=message)
            return StepResult(
                name=step.name,
                ok=False,
                request=request,
                started_at=started_at,
                ended_at=_now(),
                response=response,
                assertions=list(assertions or []),
                error_message=message,
            )

        try:
            prepared = self._preparer.prepare(step.request, ctx, deps)
        except RequestRenderError as e:
            return failed(e.request_info, str(e)), ctx

        deps.logger.debug(
            "http.request",
            step=step.name,
            method=prepared.method,
            url=prepared.url,
            timeout_sec=prepared.timeout_sec,
        )

        try:
            resp = deps.http_client.send(
                method=prepared.method,
                url=prepared.url,
                headers=prepared.headers,
                body=prepared.body,
                timeout_sec=prepared.timeout_sec,
                insecure=options.insecure,
            )
        except TransportError as e:
            return failed(prepared.info, str(e)), ctx

        response = ResponseInfo(
            status=resp.status,
            headers=resp.headers,
            content=resp.content,
            truncated=resp.truncated,
            elapsed_ms=resp.elapsed_ms,
        )
        body = response.text
        deps.logger.info(
            "http.response",
            step=step.name,
            status=response.status,
            elapsed_ms=response.elapsed_ms,
            truncated=response.truncated,
            text_head=body[:200],
        )

        assertions = self._evaluator.evaluate(
            step.assertions, body, response.headers, response.status, ctx, body_size=len(response.content)
        )
        first_failure = next((r for r in assertions if not r.ok), None)
        if first_failure is not None:
            return failed(prepared.info, first_failure.message, response, assertions), ctx

        try:
            extracted = self._extractor.extract(step.extract, response)
        except ExtractionError as e:
            return failed(prepared.info, str(e), response, assertions), ctx

        if extracted:
            deps.logger.debug("step.extracted", step=step.name, names=sorted(extracted))

        return (
            StepResult(
                name=step.name,
                ok=True,
                request=prepared.info,
                started_at=started_at,
                ended_at=_now(),
                response=response,
                assertions=assertions,
                extracted=extracted,
            ),
            ctx.with_values(extracted),
        )
