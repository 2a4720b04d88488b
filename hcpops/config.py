from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError

from .errors import ConfigError

CALLBACKS_API_BASE = "https://workflowexecutions.googleapis.com/v1"


class HcpOpsConfig(BaseModel):
    """Top-level configuration model.

    Built once per invocation and handed to the gateway and tracker; nothing
    else reads process state for these settings.
    """

    project: Optional[str] = None
    region: Optional[str] = None
    output: Literal["text", "json", "yaml"] = "text"
    callbacks_base_url: str = CALLBACKS_API_BASE
    poll_initial_interval: float = 0.5
    poll_max_interval: float = 2.0

    def require_location(self) -> None:
        """Raise :class:`ConfigError` unless project and region are set."""
        if not self.project:
            raise ConfigError("--project is required (or set HCPOPS_PROJECT)")
        if not self.region:
            raise ConfigError("--region is required (or set HCPOPS_REGION)")


def default_config_dir() -> Optional[Path]:
    try:
        return Path.home() / ".hcpops"
    except RuntimeError:
        return None


def default_config_path() -> Optional[Path]:
    config_dir = default_config_dir()
    return config_dir / "config.yaml" if config_dir else None


def load_config(path: Optional[str] = None) -> HcpOpsConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to HCPOPS_CONFIG env
            variable or ``~/.hcpops/config.yaml``.

    A missing or empty file yields the defaults. ``HCPOPS_PROJECT`` and
    ``HCPOPS_REGION`` override the values read from the file.
    """

    config_path = path or os.getenv("HCPOPS_CONFIG") or default_config_path()
    data = {}
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"reading config {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"parsing config {config_path}: expected a mapping")

    known = {key: value for key, value in data.items() if key in HcpOpsConfig.model_fields}
    try:
        config = HcpOpsConfig(**known)
    except ValidationError as exc:
        raise ConfigError(f"parsing config {config_path}: {exc}") from exc

    env_project = os.getenv("HCPOPS_PROJECT")
    if env_project:
        config.project = env_project
    env_region = os.getenv("HCPOPS_REGION")
    if env_region:
        config.region = env_region
    return config
