# src/dagflow/steps/readers/__init__.py
"""Readers: início de um fluxo, produzindo registros sob demanda."""

from .array import ReaderArray
from .csv_file import ReaderCsv
from .json_file import ReaderJson, natural_key

__all__ = ["ReaderArray", "ReaderCsv", "ReaderJson", "natural_key"]
