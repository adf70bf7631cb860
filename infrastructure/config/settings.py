# infrastructure/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REPORT_PATH = "report.md"


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings read from the environment.
    The CLI calls load_dotenv() first, so a .env file in the working
    directory can supply these as well.

      APITEST_LOG_LEVEL    loguru level (default INFO)
      APITEST_REPORT_PATH  default Markdown report path (default report.md)
    """
    log_level: str = DEFAULT_LOG_LEVEL
    report_path: str = DEFAULT_REPORT_PATH

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            log_level=(env.get("APITEST_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
            report_path=env.get("APITEST_REPORT_PATH") or DEFAULT_REPORT_PATH,
        )
