# infrastructure/plan/yaml_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from domain.json_path import to_text
from infrastructure.plan.base_loader import PlanLoadError, PlanLoaderBase


class YamlPlanLoader(PlanLoaderBase):
    def _load_file(self, path: Path) -> Any:
        try:
            with path.open("r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PlanLoadError(f"parse plan: {e}") from e


def load_vars_file(path: Union[str, Path]) -> Dict[str, str]:
    """
    Load an auxiliary YAML vars file (flat mapping) as string values.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"parse vars file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"vars file must be a mapping: {path}")
    return {str(k): to_text(v) for k, v in data.items()}
