# application/services/request_preparer.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from application.services.execution_deps import ExecutionDeps
from application.services.template_renderer import TemplateRenderError, TemplateRenderer
from domain.http import RequestInfo
from domain.json_path import to_text
from domain.plan import RequestBody, RequestSpec

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RequestRenderError(Exception):
    """Request could not be rendered; `request_info` holds a best-effort preview."""

    def __init__(self, message: str, request_info: RequestInfo):
        super().__init__(message)
        self.request_info = request_info


@dataclass(frozen=True)
class PreparedHttpRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[str]
    timeout_sec: float
    info: RequestInfo


def _with_query(url: str, pairs: List[Tuple[str, str]]) -> str:
    if not pairs:
        return url
    sep = "&" if "?" in url else "?"
    return url + sep + urlencode(pairs)


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    wanted = name.lower()
    return any(k.lower() == wanted for k in headers)


def _dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


class RequestPreparer:
    """
    Render a step's request template against the variable context.
    """

    def __init__(self, renderer: TemplateRenderer):
        self._renderer = renderer

    def prepare(self, spec: RequestSpec, ctx: Mapping[str, str], deps: ExecutionDeps) -> PreparedHttpRequest:
        method = (spec.method or "GET").upper()
        r = self._renderer

        def fail(where: str, e: Exception) -> RequestRenderError:
            return RequestRenderError(f"{where}: {e}", self.preview(spec, ctx, deps))

        try:
            url = deps.resolve_url(r.render_str(spec.url, ctx))
        except TemplateRenderError as e:
            raise fail("url template", e) from e

        query: Dict[str, str] = {}
        for k, v in (spec.query or {}).items():
            try:
                query[k] = r.render_str(to_text(v), ctx)
            except TemplateRenderError as e:
                raise fail(f"query {k}", e) from e
        url = _with_query(url, list(query.items()))

        headers: Dict[str, str] = {}
        for k, v in (spec.headers or {}).items():
            try:
                headers[k] = r.render_str(to_text(v), ctx)
            except TemplateRenderError as e:
                raise fail(f"header {k}", e) from e

        body = self._render_body(spec.body, ctx, headers, fail)

        return PreparedHttpRequest(
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeout_sec=spec.timeout_ms / 1000.0,
            info=RequestInfo(
                method=method,
                url=url,
                headers=dict(headers),
                query=dict(query),
                body=body or "",
            ),
        )

    def _render_body(self, body: Optional[RequestBody], ctx, headers: Dict[str, str], fail) -> Optional[str]:
        if body is None or body.variant_count() == 0:
            return None
        if body.variant_count() > 1:
            raise fail("body", ValueError("only one of raw/json/form is allowed in body"))

        r = self._renderer
        if body.raw:
            try:
                return r.render_str(body.raw, ctx)
            except TemplateRenderError as e:
                raise fail("body raw", e) from e

        if body.json is not None:
            try:
                rendered = r.render_value(body.json, ctx)
            except TemplateRenderError as e:
                raise fail("body json", e) from e
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = JSON_CONTENT_TYPE
            return _dump_json(rendered)

        pairs: List[Tuple[str, str]] = []
        for k, v in body.form.items():
            try:
                pairs.append((k, r.render_str(to_text(v), ctx)))
            except TemplateRenderError as e:
                raise fail(f"body form {k}", e) from e
        if not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = FORM_CONTENT_TYPE
        return urlencode(pairs)

    def preview(self, spec: RequestSpec, ctx: Mapping[str, str], deps: ExecutionDeps) -> RequestInfo:
        """Best-effort rendering; missing placeholders are left in place."""
        r = self._renderer
        method = (spec.method or "GET").upper()
        query = {k: r.render_str_partial(to_text(v), ctx) for k, v in (spec.query or {}).items()}
        url = _with_query(deps.resolve_url(r.render_str_partial(spec.url, ctx)), list(query.items()))
        headers = {k: r.render_str_partial(to_text(v), ctx) for k, v in (spec.headers or {}).items()}

        body = ""
        b = spec.body
        if b is not None and b.variant_count() == 1:
            if b.raw:
                body = r.render_str_partial(b.raw, ctx)
            elif b.json is not None:
                body = _dump_json(r.render_value_partial(b.json, ctx))
            else:
                body = urlencode([(k, r.render_str_partial(to_text(v), ctx)) for k, v in b.form.items()])

        return RequestInfo(method=method, url=url, headers=headers, query=query, body=body)
