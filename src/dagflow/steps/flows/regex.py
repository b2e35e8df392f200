# src/dagflow/steps/flows/regex.py
"""
Step canônico: flow_transformer_regex.

Procura `pattern` no valor de `field` (template resolvido com o
registro) e grava o primeiro trecho encontrado em `record[<alias>]`,
ou `None` quando não há correspondência.

`pattern` aceita a forma com delimitadores e flags (`/abc/i`) além da
expressão regular simples.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Pattern

from dagflow.core.pipeline.step import FlowStep, ValidationResult
from dagflow.core.pipeline.types import LinkRange

_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}
_DELIMITED = re.compile(r"^/(?P<body>.*)/(?P<flags>[imsx]*)$", re.DOTALL)


def compile_pattern(pattern: str) -> Pattern[str]:
    match = _DELIMITED.match(pattern)
    if match is None:
        return re.compile(pattern)
    flags = 0
    for flag in match.group("flags"):
        flags |= _FLAGS[flag]
    return re.compile(match.group("body"), flags)


class FlowTransformerRegex(FlowStep):
    key = "flow_transformer_regex"
    output_flows = LinkRange(1, 1)
    required_fields = ("pattern", "field")

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        result = super().validate_config(config)
        errors = {} if result is True else dict(result)
        pattern = config.get("pattern")
        if pattern not in (None, ""):
            try:
                compile_pattern(str(pattern))
            except re.error as exc:
                errors["config_pattern"] = f"Invalid regular expression: {exc}"
        return errors or True

    def execute(self, input: Any = None) -> Any:
        pattern = compile_pattern(str(self.definition.config["pattern"]))
        haystack = self.config.get("field")
        match = pattern.search("" if haystack is None else str(haystack))

        record = dict(input) if isinstance(input, Mapping) else {"value": input}
        record[self.alias] = match.group(0) if match else None
        return record
