# src/dagflow/steps/readers/json_file.py
"""
Step canônico: reader_json.

Lê um documento JSON e produz os itens de uma lista dentro dele.

Config:
    - json                → caminho do arquivo (relativo ao scratch ou permitido)
    - arrayexpression     → caminho até a lista (`list.users`); vazio usa a raiz
    - arraysortexpression → campo de ordenação natural, sem distinção de caixa
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, List

from dagflow.core.pipeline.capabilities import PermittedPaths, absolute_path
from dagflow.core.pipeline.step import ReaderStep

_DIGITS = re.compile(r"(\d+)")


def natural_key(value: Any) -> List[Any]:
    text = "" if value is None else str(value).lower()
    return [(0, int(part), "") if part.isdigit() else (1, 0, part) for part in _DIGITS.split(text) if part]


class ReaderJson(ReaderStep):
    key = "reader_json"
    required_fields = ("json",)
    run_checks = (PermittedPaths("json"),)

    def _lookup(self, data: Any, expression: str) -> Any:
        result = self._require_runtime().evaluator.evaluate_expression(f"data.{expression}", {"data": data})
        if not result.is_ok():
            raise ValueError(f"Could not find '{expression}' in the JSON document: {result.message}")
        return result.value

    def read(self) -> Iterator[Any]:
        path = absolute_path(self, "json")
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)

        expression = str(self.config.get("arrayexpression") or "").strip()
        records = self._lookup(data, expression) if expression else data
        if not isinstance(records, list):
            raise ValueError(f"Expected a list at '{expression or 'root'}', got {type(records).__name__}")

        sort_by = str(self.config.get("arraysortexpression") or "").strip()
        if sort_by:
            records = sorted(records, key=lambda record: natural_key(self._lookup(record, sort_by)))
        yield from records
