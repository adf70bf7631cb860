from __future__ import annotations

import pytest

from infrastructure.config.settings import DEFAULT_LOG_LEVEL, DEFAULT_REPORT_PATH, Settings
from infrastructure.url.base_url_resolver import BaseUrlResolver


def test_settings_defaults() -> None:
    settings = Settings.from_env({})

    assert settings.log_level == DEFAULT_LOG_LEVEL
    assert settings.report_path == DEFAULT_REPORT_PATH


def test_settings_from_environment() -> None:
    settings = Settings.from_env({"APITEST_LOG_LEVEL": "debug", "APITEST_REPORT_PATH": "out/r.md"})

    assert settings.log_level == "DEBUG"
    assert settings.report_path == "out/r.md"


def test_settings_reads_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("APITEST_REPORT_PATH", "env.md")
    monkeypatch.delenv("APITEST_LOG_LEVEL", raising=False)

    settings = Settings.from_env()

    assert settings.report_path == "env.md"
    assert settings.log_level == DEFAULT_LOG_LEVEL


@pytest.mark.parametrize(
    "base, url, expected",
    [
        ("https://api.test", "/users", "https://api.test/users"),
        ("https://api.test/", "users", "https://api.test/users"),
        ("https://api.test/v1/", "/users?x=1", "https://api.test/v1/users?x=1"),
        ("https://api.test", "http://other.test/a", "http://other.test/a"),
        ("https://api.test", "https://other.test/a", "https://other.test/a"),
        ("", "/users", "/users"),
    ],
)
def test_base_url_resolver(base: str, url: str, expected: str) -> None:
    assert BaseUrlResolver(base).resolve_url(url) == expected
