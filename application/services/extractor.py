# application/services/extractor.py
from __future__ import annotations

import re
from typing import Dict, Mapping

from domain import json_path
from domain.http import ResponseInfo
from domain.json_path import ABSENT
from domain.plan import DEFAULT_REGEX_GROUP, ExtractDefinition, ExtractSource


class ExtractionError(Exception):
    pass


class Extractor:
    """
    Pull named values out of a response.

    All-or-nothing: values are collected into a scratch dict that is only
    returned when every definition succeeded.
    """

    def extract(self, definitions: Mapping[str, ExtractDefinition], response: ResponseInfo) -> Dict[str, str]:
        scratch: Dict[str, str] = {}
        if not definitions:
            return scratch

        body = response.text
        for name, definition in definitions.items():
            try:
                scratch[name] = self.extract_value(definition, body, response)
            except ExtractionError as e:
                raise ExtractionError(f"extract {name}: {e}") from e
        return scratch

    def extract_value(self, definition: ExtractDefinition, body: str, response: ResponseInfo) -> str:
        kind = definition.kind
        if kind is ExtractSource.JSON:
            try:
                doc = json_path.parse(body)
            except json_path.JsonPathError as e:
                raise ExtractionError("response not valid json") from e
            value = json_path.resolve(doc, definition.path)
            if value is ABSENT:
                raise ExtractionError(f"json path {definition.path} not found")
            return json_path.to_text(value)

        if kind is ExtractSource.HEADER:
            value = response.headers.first(definition.path)
            if value is None:
                raise ExtractionError(f"header {definition.path} not found")
            return value

        if kind is ExtractSource.REGEX:
            group = definition.group or DEFAULT_REGEX_GROUP
            try:
                pattern = re.compile(definition.path)
            except re.error as e:
                raise ExtractionError(f"invalid regex: {e}") from e
            m = pattern.search(body)
            if m is None:
                raise ExtractionError(f"regex {definition.path} did not match")
            if group < 0 or group > pattern.groups:
                raise ExtractionError(f"regex no group {group} match")
            value = m.group(group)
            if value is None:
                raise ExtractionError(f"regex group {group} did not participate in the match")
            return value

        raise ExtractionError(f"unknown extract from {definition.source}")
