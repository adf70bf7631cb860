from __future__ import annotations

import re
from typing import Any, List, Mapping

from domain.context import merge_contexts

__all__ = [
    "MissingVariableError",
    "TemplateRenderError",
    "TemplateRenderer",
    "merge_contexts",
]

PLACEHOLDER = re.compile(r"\{\{\s*([\w.-]+)\s*\}\}")


class TemplateRenderError(Exception):
    pass


class MissingVariableError(TemplateRenderError):
    def __init__(self, missing: List[str], partial: str):
        self.missing = list(missing)
        self.partial = partial
        super().__init__(f"missing variable: {','.join(self.missing)}")


class TemplateRenderer:
    """
    {{name}} を変数コンテキストから展開する。
    - 未定義の変数はそのまま残し、MissingVariableError にまとめて報告する
    - render_value は dict / list を再帰的に辿り、文字列の葉だけを展開する
    - *_partial 系はプレビュー用。未定義があっても例外にしない
    """

    def render_str(self, s: str, ctx: Mapping[str, str]) -> str:
        out, missing = self._substitute(s, ctx)
        if missing:
            raise MissingVariableError(missing, out)
        return out

    def render_str_partial(self, s: str, ctx: Mapping[str, str]) -> str:
        out, _missing = self._substitute(s, ctx)
        return out

    def render_value(self, value: Any, ctx: Mapping[str, str]) -> Any:
        """
        Stops at the first failing string leaf in traversal order;
        nothing after it is rendered.
        """
        if isinstance(value, str):
            return self.render_str(value, ctx)
        if isinstance(value, list):
            return [self.render_value(item, ctx) for item in value]
        if isinstance(value, dict):
            return {k: self.render_value(v, ctx) for k, v in value.items()}
        return value

    def render_value_partial(self, value: Any, ctx: Mapping[str, str]) -> Any:
        if isinstance(value, str):
            return self.render_str_partial(value, ctx)
        if isinstance(value, list):
            return [self.render_value_partial(item, ctx) for item in value]
        if isinstance(value, dict):
            return {k: self.render_value_partial(v, ctx) for k, v in value.items()}
        return value

    def _substitute(self, s: str, ctx: Mapping[str, str]) -> tuple[str, List[str]]:
        if s is None:
            return "", []
        if "{{" not in s:
            return s, []

        missing: List[str] = []

        def repl(m: "re.Match[str]") -> str:
            key = m.group(1)
            if key not in ctx:
                missing.append(key)
                return m.group(0)
            return str(ctx[key])

        return PLACEHOLDER.sub(repl, s), missing
