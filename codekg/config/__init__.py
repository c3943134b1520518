"""
Configuration module for codekg.
"""

from .settings import (
    CodeKGSettings,
    FusionWeights,
    PipelineSettings,
    RetrievalSettings,
)
from .loader import (
    CONFIG_ENV_VAR,
    get_default_config_path,
    load_settings,
)

__all__ = [
    "CodeKGSettings",
    "FusionWeights",
    "PipelineSettings",
    "RetrievalSettings",
    "CONFIG_ENV_VAR",
    "get_default_config_path",
    "load_settings",
]
