# src/dagflow/formats/encoders.py
"""
Encoders de registros para o `writer_stream`.

Um encoder produz o texto de um stream em três partes:

    start_output()                → cabeçalho do stream
    encode_record(record, rownum) → texto de um registro
    close_output()                → rodapé do stream

Formatos:
    - json → array JSON, um registro por elemento (opcionalmente indentado)
    - csv  → linha de cabeçalho com as chaves do primeiro registro

Limites explícitos:
    - Não abre nem fecha arquivos (papel do step)
    - Não valida schema entre registros
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, Mapping, Type

INDENT = "    "


class EncoderBase:
    def __init__(self, prettyprint: bool = False):
        self.prettyprint = prettyprint
        self.data_added = False

    def start_output(self) -> str:
        return ""

    def encode_record(self, record: Any, rownum: int) -> str:
        raise NotImplementedError

    def close_output(self) -> str:
        return ""


class JsonEncoder(EncoderBase):
    def start_output(self) -> str:
        return "[\n" + (INDENT if self.prettyprint else "")

    def encode_record(self, record: Any, rownum: int) -> str:
        output = ",\n" if self.data_added else ""
        if self.prettyprint:
            output += json.dumps(record, indent=4, ensure_ascii=False, default=str).replace("\n", "\n" + INDENT)
        else:
            output += json.dumps(record, ensure_ascii=False, default=str)
        self.data_added = True
        return output

    def close_output(self) -> str:
        return "\n]\n"


class CsvEncoder(EncoderBase):
    def __init__(self, prettyprint: bool = False, delimiter: str = ","):
        super().__init__(prettyprint)
        self.delimiter = delimiter

    def _row(self, fields: Any) -> str:
        buffer = io.StringIO()
        csv.writer(buffer, delimiter=self.delimiter, lineterminator="\n").writerow(fields)
        return buffer.getvalue()

    def encode_record(self, record: Any, rownum: int) -> str:
        fields = dict(record) if isinstance(record, Mapping) else {"value": record}
        output = "" if self.data_added else self._row(list(fields))
        output += self._row(list(fields.values()))
        self.data_added = True
        return output


ENCODERS: Dict[str, Type[EncoderBase]] = {
    "json": JsonEncoder,
    "csv": CsvEncoder,
}


def resolve_encoder(name: str) -> Type[EncoderBase]:
    try:
        return ENCODERS[str(name).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown stream format '{name}' (expected one of: {', '.join(ENCODERS)})") from None
