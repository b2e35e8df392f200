# src/dagflow/steps/writers/stream.py
"""
Step canônico: writer_stream.

Responsabilidades:
- gravar cada registro do fluxo em um arquivo, no formato configurado
  (`json` ou `csv`, ver `dagflow.formats`)
- repassar o registro adiante (o writer pode alimentar outro step)
- publicar `steps.<alias>.records` com o total de registros recebidos

Config esperada (exemplo):
    config:
      streamname: output/users.json
      format: json
      prettyprint: true

Regras:
- o arquivo é aberto no primeiro registro e fechado em `on_finalise`
  ou `on_abort` (o rodapé do formato é escrito no fechamento)
- `streamname` relativo vive no scratch da run; absoluto precisa estar
  em `engine.permitted_dirs`
- em dry-run com destino fora do scratch nada é gravado; os registros
  são apenas contados

Limites explícitos:
- NÃO acrescenta a arquivos existentes (o arquivo é recriado)
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Mapping, Optional

from dagflow.core.pipeline.capabilities import DestinationOutsideScratch, PermittedPaths, absolute_path
from dagflow.core.pipeline.definition import StepDefinition
from dagflow.core.pipeline.step import ValidationResult, WriterStep
from dagflow.formats import ENCODERS, CsvEncoder, EncoderBase, resolve_encoder


class WriterStream(WriterStep):
    key = "writer_stream"
    required_fields = ("streamname", "format")
    side_effect = DestinationOutsideScratch("streamname")
    run_checks = (PermittedPaths("streamname"),)
    outputs = {"records": "Number of records received by the writer"}
    concurrency_supported = False

    def __init__(self, definition: StepDefinition):
        super().__init__(definition)
        self.records = 0
        self.path: Optional[str] = None
        self._handle: Optional[IO[str]] = None
        self._encoder: Optional[EncoderBase] = None

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        result = super().validate_config(config)
        errors = {} if result is True else dict(result)
        fmt = config.get("format")
        if fmt not in (None, "") and str(fmt).strip().lower() not in ENCODERS:
            errors["config_format"] = f"Unknown format '{fmt}' (expected one of: {', '.join(ENCODERS)})"
        return errors or True

    def _open(self) -> None:
        config = self.config
        encoder_class = resolve_encoder(str(config.get("format")))
        if encoder_class is CsvEncoder and config.get("delimiter"):
            self._encoder = CsvEncoder(bool(config.get("prettyprint")), delimiter=str(config["delimiter"]))
        else:
            self._encoder = encoder_class(bool(config.get("prettyprint")))

        self.path = absolute_path(self, "streamname")
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.path, "w", encoding="utf-8", newline="")
        self._handle.write(self._encoder.start_output())
        self.log(f"Writing {config.get('format')} records to {self.path}", level="DEBUG")

    def execute(self, input: Any = None) -> Any:
        self.records += 1
        self.set_output("records", self.records)
        if self.is_dry_run() and self.has_side_effect():
            return input

        if self._handle is None:
            self._open()
        self._handle.write(self._encoder.encode_record(input, self.records))  # type: ignore[union-attr]
        return input

    def _close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            if self._encoder is not None:
                handle.write(self._encoder.close_output())
        finally:
            handle.close()

    def on_abort(self) -> None:
        self._close()

    def on_finalise(self) -> None:
        self._close()
        if self.is_dry_run() and self.has_side_effect():
            self.log(f"Dry run, {self.records} record(s) were not written")
