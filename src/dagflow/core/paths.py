# src/dagflow/core/paths.py
"""
Utilitários de caminho usados por steps com origem/destino em arquivo.

Regras:
    - caminho sem esquema é do esquema `file`
    - caminho relativo (sem esquema e sem `/` inicial) vive no scratch
      directory da run
    - caminhos absolutos do esquema `file` precisam estar sob um dos
      diretórios permitidos (`engine.permitted_dirs`)
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, Optional, Union

_SCHEME = re.compile(r"^(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*)://")


def path_get_scheme(path: str) -> str:
    match = _SCHEME.match(path or "")
    return match.group("scheme").lower() if match else "file"


def path_has_scheme(path: str) -> bool:
    return _SCHEME.match(path or "") is not None


def path_is_relative(path: str) -> bool:
    return not path_has_scheme(path) and not str(path or "").startswith("/")


def path_get_absolute(path: str, scratch_dir: Union[str, Path, None]) -> str:
    if path_is_relative(path) and scratch_dir is not None:
        return os.path.join(str(scratch_dir), path)
    return path


def path_is_inside(path: str, directory: Union[str, Path]) -> bool:
    root = os.path.realpath(str(directory))
    target = os.path.realpath(path)
    return target == root or target.startswith(root.rstrip(os.sep) + os.sep)


def path_validate(path: str, permitted_dirs: Iterable[str]) -> Optional[str]:
    """None quando o caminho é aceito; caso contrário, a mensagem de erro."""
    if not path:
        return "A path is required"
    if path_is_relative(path) or path_get_scheme(path) != "file":
        return None
    local = _SCHEME.sub("", path)
    for directory in permitted_dirs:
        if path_is_inside(local, directory):
            return None
    return f"The path '{path}' is not inside any permitted directory"
