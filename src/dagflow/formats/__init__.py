# src/dagflow/formats/__init__.py
"""Formatos de saída usados pelos writers."""

from .encoders import ENCODERS, CsvEncoder, EncoderBase, JsonEncoder, resolve_encoder

__all__ = [
    "ENCODERS",
    "CsvEncoder",
    "EncoderBase",
    "JsonEncoder",
    "resolve_encoder",
]
