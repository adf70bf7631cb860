# infrastructure/report/markdown_report.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Union

from application.services.redactor import mask_body, mask_dict, mask_value
from domain.run_result import RunResult, StepResult

MAX_REPORT_BODY_LENGTH = 4000


class ReportWriteError(Exception):
    pass


def _status(ok: bool) -> str:
    return "PASS" if ok else "FAIL"


def format_body(body: str) -> str:
    """Pretty-print JSON bodies; anything else is returned unchanged."""
    if not body:
        return body
    try:
        return json.dumps(json.loads(body), indent=2, ensure_ascii=False)
    except ValueError:
        return body


def truncate_body(body: str) -> str:
    if len(body) <= MAX_REPORT_BODY_LENGTH:
        return body
    return body[:MAX_REPORT_BODY_LENGTH] + "\n... (truncated)"


class MarkdownReportWriter:
    def render(self, result: RunResult) -> str:
        lines: List[str] = []
        add = lines.append

        add(f"# {result.plan_name}")
        add("")
        add("## Summary")
        add("")
        add("| Item | Value |")
        add("| --- | --- |")
        add(f"| Run ID | {result.run_id} |")
        add(f"| Start | {result.started_at.isoformat(timespec='seconds')} |")
        add(f"| End | {result.ended_at.isoformat(timespec='seconds')} |")
        add(f"| Duration | {result.ended_at - result.started_at} |")
        add(f"| Result | {_status(result.ok)} |")
        if not result.ok:
            add(f"| Failed Step | {result.failed_step or 'unknown'} |")
        add("")

        for step in result.steps:
            self._render_step(step, add)

        return "\n".join(lines) + "\n"

    def write(self, result: RunResult, path: Union[str, Path]) -> Path:
        out = Path(path)
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(self.render(result), encoding="utf-8", errors="replace")
        except OSError as e:
            raise ReportWriteError(f"write report {out}: {e}") from e
        return out

    def _render_step(self, step: StepResult, add) -> None:
        add(f"## Step: {step.name} ({_status(step.ok)})")
        add("")
        add(f"- Duration: {step.elapsed_ms}ms")
        if step.error_message:
            add(f"- Error: {step.error_message}")
        add("")

        req = step.request
        add("### Request")
        add("")
        add(f"- Method: {req.method}")
        add(f"- URL: {req.url}")
        if req.query:
            add("- Query:")
            for k, v in mask_dict(req.query).items():
                add(f"  - {k}: {v}")
        if req.headers:
            add("- Headers:")
            for k, v in mask_dict(req.headers).items():
                add(f"  - {k}: {v}")
        if req.body:
            add("- Body:")
            add("```")
            add(truncate_body(format_body(mask_body(req.body))))
            add("```")
        add("")

        resp = step.response
        if resp is not None:
            add("### Response")
            add("")
            add(f"- Status: {resp.status}")
            if len(resp.headers):
                add("- Headers:")
                for k, values in resp.headers.grouped().items():
                    add(f"  - {k}: {mask_value(k, ','.join(values))}")
            body = resp.text
            if body:
                text = truncate_body(format_body(mask_body(body)))
                if resp.truncated:
                    text += "\n... (truncated)"
                add("- Body:")
                add("```")
                add(text)
                add("```")

        if step.extracted:
            add("")
            add("### Extracted Vars")
            for k, v in mask_dict(step.extracted).items():
                add(f"- {k}: {v}")

        if step.assertions:
            add("")
            add("### Assertions")
            for i, a in enumerate(step.assertions, start=1):
                add(f"{i}. **{_status(a.ok)}** {a.message}")

        add("")
