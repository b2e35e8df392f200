# src/dagflow/core/expression/functions.py
"""
Funções disponíveis dentro de expressões `${{ ... }}`.

Apenas funções registradas aqui (ou passadas explicitamente ao
`ExpressionEvaluator`) podem ser chamadas; métodos de objetos não são
acessíveis a partir de expressões.
"""

from __future__ import annotations

import json
import time as _time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional


def from_json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def isset(value: Any) -> bool:
    return value is not None


def count(value: Any) -> int:
    if value is None:
        return 0
    return len(value)


def round_number(value: Any, precision: int = 0) -> Any:
    rounded = round(float(value), int(precision))
    if int(precision) <= 0:
        return int(rounded)
    return rounded


def now() -> int:
    return int(_time.time())


def date(fmt: str = "%Y-%m-%d %H:%M:%S", timestamp: Optional[Any] = None) -> str:
    """Formata `timestamp` (epoch em segundos, UTC) com `strftime`."""
    seconds = _time.time() if timestamp is None else float(timestamp)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(fmt)


def keys(value: Any) -> list:
    if isinstance(value, Mapping):
        return list(value.keys())
    return list(range(len(value)))


def lower(value: Any) -> str:
    return str(value).lower()


def upper(value: Any) -> str:
    return str(value).upper()


def join(separator: str, values: Any) -> str:
    return str(separator).join(str(v) for v in values)


def split(value: Any, separator: str = ",") -> list:
    return str(value).split(separator)


DEFAULT_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "fromJSON": from_json,
    "toJSON": to_json,
    "isset": isset,
    "count": count,
    "round": round_number,
    "time": now,
    "date": date,
    "keys": keys,
    "lower": lower,
    "upper": upper,
    "join": join,
    "split": split,
}
