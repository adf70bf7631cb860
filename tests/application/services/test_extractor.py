# tests/application/services/test_extractor.py
import pytest

from application.services.extractor import ExtractionError, Extractor
from domain.http import HttpHeaders, ResponseInfo
from domain.plan import ExtractDefinition


def _response(body: str, headers=None) -> ResponseInfo:
    return ResponseInfo(status=200, headers=HttpHeaders(headers or {}), content=body.encode("utf-8"))


def test_json_and_header_extraction():
    resp = _response('{"data": {"id": 5, "token": "def", "ok": true, "ratio": 2.0}}', {"X-Token": "abc"})
    defs = {
        "token": ExtractDefinition(source="json", path="data.token"),
        "id": ExtractDefinition(source="json", path="data.id"),
        "ok": ExtractDefinition(source="json", path="data.ok"),
        "ratio": ExtractDefinition(source="json", path="data.ratio"),
        "h": ExtractDefinition(source="header", path="x-token"),
    }

    out = Extractor().extract(defs, resp)

    assert out == {"token": "def", "id": "5", "ok": "true", "ratio": "2", "h": "abc"}


def test_regex_default_group():
    resp = _response("order=12345, status=ok")
    defs = {"order": ExtractDefinition(source="regex", path=r"order=(\d+)")}

    assert Extractor().extract(defs, resp) == {"order": "12345"}


def test_regex_explicit_groups_and_zero_means_default():
    resp = _response("order=12345, status=ok")
    defs = {
        "zero": ExtractDefinition(source="regex", path=r"status=(\w+)", group=0),
        "status": ExtractDefinition(source="regex", path=r"(order)=\d+, status=(\w+)", group=2),
    }

    assert Extractor().extract(defs, resp) == {"zero": "ok", "status": "ok"}


@pytest.mark.parametrize(
    "definition, body, message",
    [
        (ExtractDefinition(source="json", path="data.missing"), '{"data": {}}', "extract v: json path data.missing not found"),
        (ExtractDefinition(source="header", path="X-Nope"), "", "extract v: header X-Nope not found"),
        (ExtractDefinition(source="regex", path=r"order=(\d+)", group=2), "order=1", "extract v: regex no group 2 match"),
        (ExtractDefinition(source="regex", path=r"invoice=(\d+)"), "order=1", "extract v: regex invoice=(\\d+) did not match"),
        (ExtractDefinition(source="cookie", path="sid"), "", "extract v: unknown extract from cookie"),
    ],
)
def test_extraction_errors(definition, body, message):
    with pytest.raises(ExtractionError) as excinfo:
        Extractor().extract({"v": definition}, _response(body))
    assert str(excinfo.value) == message


def test_json_source_requires_json_body():
    with pytest.raises(ExtractionError, match="response not valid json"):
        Extractor().extract({"v": ExtractDefinition(source="json", path="a")}, _response("plain"))


def test_invalid_regex():
    with pytest.raises(ExtractionError, match="invalid regex"):
        Extractor().extract({"v": ExtractDefinition(source="regex", path="(")}, _response("x"))


def test_non_participating_group_is_an_error():
    defs = {"v": ExtractDefinition(source="regex", path=r"a(b)?c")}
    with pytest.raises(ExtractionError, match="did not participate"):
        Extractor().extract(defs, _response("ac"))


def test_all_or_nothing():
    resp = _response('{"a": "1"}')
    defs = {
        "a": ExtractDefinition(source="json", path="a"),
        "b": ExtractDefinition(source="json", path="b"),
    }

    with pytest.raises(ExtractionError):
        Extractor().extract(defs, resp)


def test_no_definitions():
    assert Extractor().extract({}, _response("")) == {}
