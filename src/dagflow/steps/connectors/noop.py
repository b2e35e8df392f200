# src/dagflow/steps/connectors/noop.py
from __future__ import annotations

from dagflow.core.pipeline.step import ConnectorStep


class Noop(ConnectorStep):
    """Connector sem efeito; útil para agrupar dependências."""

    key = "noop"
