# infrastructure/plan/__init__.py
from infrastructure.plan.base_loader import PlanLoadError, PlanLoaderBase
from infrastructure.plan.json_loader import JsonPlanLoader
from infrastructure.plan.loader_registry import PlanLoaderRegistry
from infrastructure.plan.yaml_loader import YamlPlanLoader, load_vars_file

__all__ = [
    "PlanLoadError",
    "PlanLoaderBase",
    "PlanLoaderRegistry",
    "YamlPlanLoader",
    "JsonPlanLoader",
    "load_vars_file",
]
