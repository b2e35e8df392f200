# src/dagflow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do dagflow.

As exceções aqui definidas representam violações estruturais
explícitas durante carregamento e merge de configuração, e não
erros de execução de steps.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa erro de domínio ou execução de Step
"""


class ConfigError(Exception):
    """Exceção base para erros relacionados à configuração do engine."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de defaults informado explicitamente não existe.

    Quando `defaults_path` não é informado, os defaults embutidos
    (`DEFAULT_CONFIG`) são usados e esta exceção nunca ocorre.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato do arquivo de configuração não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapeamento (`dict`)."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipo entre base e override durante o deep-merge.

    Exemplo: a base define `engine.fail_fast` como bool e o override
    como lista.
    """
