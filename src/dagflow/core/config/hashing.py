# src/dagflow/core/config/hashing.py
"""
Hash canônico de configuração e de definições de dataflow.

O hash é calculado sobre uma serialização JSON canônica (chaves
ordenadas, separadores compactos, UTF-8), garantindo que a mesma
estrutura sempre produza o mesmo identificador. É usado pelo registro
de run para identificar a configuração e a definição executadas.
"""

import hashlib
import json
from typing import Any, Dict


def compute_hash(payload: Any) -> str:
    """
    Calcula o SHA-256 hexadecimal de uma estrutura serializável.

    Valores não serializáveis em JSON (datas, enums) são convertidos
    via `str`.
    """
    canonical_json = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Calcula o hash determinístico da configuração efetiva do engine.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config to hash must be a dict, got: {type(config).__name__}"
        )
    return compute_hash(config)
