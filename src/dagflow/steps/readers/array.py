# src/dagflow/steps/readers/array.py
"""
Step canônico: reader_array.

Produz, um a um, os itens de uma lista declarada na configuração
(`array`). A lista pode vir como YAML/JSON em texto, o que permite
colar dados de exemplo direto na definição do dataflow.
"""

from __future__ import annotations

from typing import Any, Iterator, List, Mapping

import yaml  # PyYAML

from dagflow.core.pipeline.step import ReaderStep, ValidationResult


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, str):
        value = yaml.safe_load(value)
    if not isinstance(value, (list, tuple)):
        raise ValueError("The field 'array' must be a list")
    return list(value)


class ReaderArray(ReaderStep):
    key = "reader_array"

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        if config.get("array") is None:
            return {"config_array": "The field 'array' is required"}
        try:
            _as_list(config["array"])
        except (ValueError, yaml.YAMLError) as exc:
            return {"config_array": str(exc)}
        return True

    def read(self) -> Iterator[Any]:
        yield from _as_list(self.config.get("array"))
