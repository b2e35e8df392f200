# src/dagflow/core/config/__init__.py
"""
Camada de configuração do engine.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução de configuração final via deep-merge determinístico
    - Geração de hash canônico para rastreabilidade
    - Visão tipada das opções do engine (`EngineSettings`)

Limites explícitos:
    - Não carrega definições de dataflow (ver `core.pipeline.store`)
    - Não interage com Engine ou Steps diretamente
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash, compute_hash
from .loader import DEFAULT_CONFIG, load_config, load_file
from .merge import deep_merge
from .settings import EngineSettings

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "DEFAULT_CONFIG",
    "EngineSettings",
    "compute_config_hash",
    "compute_hash",
    "deep_merge",
    "load_config",
    "load_file",
]
