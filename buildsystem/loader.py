import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from . import config as settings

DEFAULT_TEMPERATURE = 0.7


@dataclass(frozen=True)
class BuildConfig:
    project_name: str = settings.DEFAULT_PROJECT_NAME
    platform: str = settings.DEFAULT_PLATFORM
    model: str = settings.DEFAULT_MODEL
    provider: str = settings.LLM_PROVIDER
    max_concurrency: int = settings.BATCH_CONCURRENCY
    request_timeout: Optional[float] = settings.REQUEST_TIMEOUT or None
    temperatures: Dict[str, float] = field(default_factory=dict)

    def get_temperature(self, operation_id: str) -> float:
        """Get temperature for an operation id."""
        return self.temperatures.get(str(operation_id), DEFAULT_TEMPERATURE)

    def global_config(self) -> Dict[str, Any]:
        """Global settings seeded into the execution context."""
        return {
            "projectName": self.project_name,
            "platform": self.platform,
            "model": self.model,
        }


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_temperatures(data: Dict[str, Any]) -> Dict[str, float]:
    return {str(key): float(value) for key, value in (data or {}).items()}


def parse_build_config(data: Dict[str, Any]) -> BuildConfig:
    """
    Build a BuildConfig from a parsed YAML mapping.

    Missing keys fall back to environment settings.

    Raises:
        ValueError: If max_concurrency is below 1 or a value has the wrong type
    """
    project = data.get("project", {})
    generation = data.get("generation", {})

    max_concurrency = int(generation.get("max_concurrency", settings.BATCH_CONCURRENCY))
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    timeout = generation.get("request_timeout", settings.REQUEST_TIMEOUT)

    return BuildConfig(
        project_name=project.get("name", settings.DEFAULT_PROJECT_NAME),
        platform=project.get("platform", settings.DEFAULT_PLATFORM),
        model=generation.get("model", settings.DEFAULT_MODEL),
        provider=generation.get("provider", settings.LLM_PROVIDER),
        max_concurrency=max_concurrency,
        request_timeout=float(timeout) if timeout else None,
        temperatures=_parse_temperatures(data.get("temperatures", {})),
    )


def load_build_config(path: Optional[str] = None) -> BuildConfig:
    """
    Load a build config file, or defaults when no path is given.

    Args:
        path: Path to a YAML file like config/build.yaml

    Raises:
        FileNotFoundError: If path does not exist
    """
    if path is None:
        return BuildConfig()
    if not os.path.exists(path):
        raise FileNotFoundError(f"Build config not found: {path}")
    return parse_build_config(_load_yaml(path))
