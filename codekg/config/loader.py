"""
Settings Loader
===============

Loads CodeKGSettings from YAML with fallback to defaults.

Load order:
1. Explicit path argument
2. CODEKG_CONFIG environment variable
3. Packaged codekg/config/codekg.yaml
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
import yaml

from codekg.config.settings import CodeKGSettings

log = structlog.get_logger()

CONFIG_ENV_VAR = "CODEKG_CONFIG"


def get_default_config_path() -> Path:
    """Path of the packaged default settings file."""
    return Path(__file__).parent / "codekg.yaml"


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return get_default_config_path()


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
            log.debug("Loaded settings from YAML", path=str(config_path))
    except FileNotFoundError:
        log.warning("Settings file not found, using defaults", path=str(config_path))
        return {}
    except yaml.YAMLError as e:
        log.error("Error parsing settings file, using defaults", path=str(config_path), error=str(e))
        return {}

    if not isinstance(data, dict):
        log.error("Settings file must contain a mapping, using defaults", path=str(config_path))
        return {}
    return data


def load_settings(path: Optional[Union[str, Path]] = None) -> CodeKGSettings:
    """
    Load settings.

    Args:
        path: Optional YAML path overriding the env var and the packaged default

    Returns:
        Validated CodeKGSettings

    Raises:
        pydantic.ValidationError: if the YAML holds out-of-range values
    """
    config_path = resolve_config_path(path)
    settings = CodeKGSettings(**_read_yaml(config_path))
    log.info(
        "Settings loaded",
        path=str(config_path),
        max_refinements=settings.pipeline.max_refinements,
        expansion_depth=settings.retrieval.expansion_depth,
    )
    return settings
