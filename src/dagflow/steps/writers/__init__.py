# src/dagflow/steps/writers/__init__.py
"""Writers: fim de um fluxo, gravando registros em um destino."""

from .stream import WriterStream

__all__ = ["WriterStream"]
