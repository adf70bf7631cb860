from __future__ import annotations

import json
from pathlib import Path

import pytest
from loguru import logger

from local_server import json_route, serve
from scripts import apitest

PLAN = """
name: Login flow
base_url: http://unused.invalid
vars:
  user: alice
steps:
  - name: login
    request:
      method: POST
      url: /api/login
      body:
        json:
          username: "{{user}}"
          password: "{{password}}"
    extract:
      token:
        from: json
        path: data.token
    assert:
      - type: status
        op: ==
        expect: 200
  - name: profile
    request:
      url: /api/me
      headers:
        Authorization: "Bearer {{token}}"
    assert:
      - type: json
        path: data.name
        op: ==
        expect: "{{expected_name}}"
"""


def _routes():
    return {
        ("POST", "/api/login"): json_route({"data": {"token": "t-1"}}),
        ("GET", "/api/me"): json_route({"data": {"name": "alice"}}),
    }


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("APITEST_REPORT_PATH", raising=False)
    monkeypatch.delenv("APITEST_LOG_LEVEL", raising=False)
    (tmp_path / "plan.yaml").write_text(PLAN, encoding="utf-8")
    yield tmp_path
    logger.remove()


def _main(argv) -> int:
    with pytest.raises(SystemExit) as excinfo:
        apitest.main(argv)
    return excinfo.value.code


def test_run_passes_and_writes_report(workdir: Path, capsys) -> None:
    # Arrange
    (workdir / "vars.yaml").write_text("expected_name: bob\n", encoding="utf-8")

    with serve(_routes()) as (base, received):
        # Act
        code = _main(
            [
                "run", "-f", "plan.yaml", "-o", "out/report.md", "--base-url", base,
                "--env", "vars.yaml", "--var", "password=pw", "--var", "expected_name=alice",
            ]
        )

    # Assert
    out = capsys.readouterr().out
    assert code == apitest.EXIT_OK
    assert "Success: True" in out
    assert "[PASS] login" in out
    assert "Report: out/report.md" in out

    login_body = json.loads(received[0][3])
    assert login_body == {"username": "alice", "password": "pw"}
    assert received[1][2]["Authorization"] == "Bearer t-1"

    report = (workdir / "out" / "report.md").read_text(encoding="utf-8")
    assert "| Result | PASS |" in report
    assert '"password": "[masked]"' in report


def test_run_failure_exits_1(workdir: Path, capsys) -> None:
    with serve(_routes()) as (base, received):
        code = _main(["run", "-f", "plan.yaml", "--base-url", base, "--var", "password=pw", "--var", "expected_name=bob"])

    out = capsys.readouterr().out
    assert code == apitest.EXIT_FAILED
    assert "Failed Step: profile" in out
    assert "expect bob, got alice" in out
    assert (workdir / "report.md").exists()
    assert len(received) == 2


def test_missing_variable_fails_step_without_request(workdir: Path, capsys) -> None:
    with serve(_routes()) as (base, received):
        code = _main(["run", "-f", "plan.yaml", "--base-url", base])

    out = capsys.readouterr().out
    assert code == apitest.EXIT_FAILED
    assert "Failed Step: login" in out
    assert "missing variable: password" in out
    assert received == []


def test_report_path_from_environment(workdir: Path, monkeypatch) -> None:
    monkeypatch.setenv("APITEST_REPORT_PATH", "reports/env.md")

    with serve(_routes()) as (base, _):
        _main(["run", "-f", "plan.yaml", "--base-url", base, "--var", "password=pw", "--var", "expected_name=alice"])

    assert (workdir / "reports" / "env.md").exists()


@pytest.mark.parametrize(
    "argv, message",
    [
        (["run", "-f", "missing.yaml"], "load plan: Plan file not found"),
        (["run", "-f", "plan.toml"], "load plan: Unsupported plan format"),
        (["run", "-f", "plan.yaml", "--var", "novalue"], "invalid var novalue, expect k=v"),
        (["run", "-f", "plan.yaml", "--env", "nope.yaml"], "env file:"),
    ],
)
def test_setup_errors_exit_2(workdir: Path, capsys, argv, message) -> None:
    code = _main(argv)

    assert code == apitest.EXIT_USAGE
    assert message in capsys.readouterr().err
    assert not (workdir / "report.md").exists()


def test_unwritable_report_path_exits_2(workdir: Path, capsys) -> None:
    (workdir / "blocker").write_text("x", encoding="utf-8")

    code = _main(["run", "-f", "plan.yaml", "-o", "blocker/report.md"])

    assert code == apitest.EXIT_USAGE
    assert "report path" in capsys.readouterr().err


def test_missing_command_prints_help(workdir: Path, capsys) -> None:
    code = _main([])

    assert code == apitest.EXIT_USAGE
    assert "usage: apitest" in capsys.readouterr().err


def test_missing_file_flag_is_a_usage_error(workdir: Path) -> None:
    assert _main(["run"]) == 2


def test_parse_vars_keeps_equals_in_value() -> None:
    assert apitest._parse_vars(["a=1", "q=x=y", "empty="]) == {"a": "1", "q": "x=y", "empty": ""}
