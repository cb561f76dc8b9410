"""
Camada de configuração do Sluice.

Carrega, mescla e identifica arquivos de pipeline:
    - `load_config`: arquivo principal + override local opcional
    - `deep_merge`: política determinística de merge
    - `compute_config_hash`: identidade canônica (SHA-256)

A configuração não contém lógica: apenas referências a scripts e suas
opções. A interpretação em `PipelineMeta` vive em `sluice.core.pipeline`.
"""

from .errors import (
    ConfigError,
    ConfigNotFoundError,
    ConfigTypeConflictError,
    InvalidConfigRootTypeError,
    InvalidPipelineConfigError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigTypeConflictError",
    "InvalidConfigRootTypeError",
    "InvalidPipelineConfigError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "load_config",
    "deep_merge",
]
