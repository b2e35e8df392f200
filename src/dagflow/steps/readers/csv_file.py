# src/dagflow/steps/readers/csv_file.py
"""
Step canônico: reader_csv.

Responsabilidades:
- ler um CSV em blocos (pandas, `chunksize`) e produzir um dicionário
  por linha, sem coerção de tipos (todas as colunas como texto)
- aceitar cabeçalhos explícitos (`headers`) quando o arquivo não os tem

Config esperada (exemplo):
    config:
      path: input/users.csv
      delimiter: ";"
      headers: "id;name;email"
      chunksize: 500

Limites explícitos:
- NÃO infere schema
- NÃO abre o arquivo antes do primeiro pull
"""

from __future__ import annotations

import csv
from typing import Any, Dict, Iterator, List

import pandas as pd

from dagflow.core.pipeline.capabilities import PermittedPaths, absolute_path
from dagflow.core.pipeline.step import ReaderStep

DEFAULT_DELIMITER = ","
DEFAULT_CHUNKSIZE = 1000


def _parse_headers(headers: str, delimiter: str) -> List[str]:
    row = next(csv.reader([headers], delimiter=delimiter), [])
    return [name.strip() for name in row]


class ReaderCsv(ReaderStep):
    key = "reader_csv"
    required_fields = ("path",)
    run_checks = (PermittedPaths("path"),)

    def read(self) -> Iterator[Dict[str, Any]]:
        config = self.config
        path = absolute_path(self, "path")
        delimiter = str(config.get("delimiter") or DEFAULT_DELIMITER)
        options: Dict[str, Any] = {
            "sep": delimiter,
            "dtype": str,
            "keep_default_na": False,
            "chunksize": int(config.get("chunksize") or DEFAULT_CHUNKSIZE),
        }
        headers = config.get("headers")
        if headers:
            options["header"] = None
            options["names"] = _parse_headers(str(headers), delimiter)

        try:
            reader = pd.read_csv(path, **options)
        except pd.errors.EmptyDataError:
            self.log(f"{path} is empty", level="DEBUG")
            return

        with reader:
            for chunk in reader:
                yield from chunk.to_dict(orient="records")
