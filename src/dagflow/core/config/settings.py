# src/dagflow/core/config/settings.py
"""
Visão tipada das opções do engine dentro da configuração resolvida.

O engine nunca lê chaves soltas do dicionário de configuração: tudo
passa por `EngineSettings.from_config`, que aplica os defaults
embutidos e normaliza tipos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .merge import deep_merge
from .loader import DEFAULT_CONFIG


@dataclass(frozen=True)
class EngineSettings:
    fail_fast: bool = True
    log_level: str = "INFO"
    scratch_root: Optional[str] = None
    permitted_dirs: Tuple[str, ...] = ()
    lock_dir: Optional[str] = None
    global_vars: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "EngineSettings":
        resolved = deep_merge(DEFAULT_CONFIG, config or {})
        engine_cfg = resolved.get("engine", {}) or {}
        global_cfg = resolved.get("global", {}) or {}
        return cls(
            fail_fast=bool(engine_cfg.get("fail_fast", True)),
            log_level=str(engine_cfg.get("log_level") or "INFO").upper(),
            scratch_root=engine_cfg.get("scratch_root"),
            permitted_dirs=tuple(engine_cfg.get("permitted_dirs") or ()),
            lock_dir=engine_cfg.get("lock_dir"),
            global_vars=dict(global_cfg.get("vars") or {}),
        )
