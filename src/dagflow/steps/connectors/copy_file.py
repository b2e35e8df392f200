# src/dagflow/steps/connectors/copy_file.py
"""
Step canônico: copy_file.

Responsabilidades:
- copiar um arquivo, ou todos os arquivos de um glob, para `to`
- criar o diretório de destino quando necessário
- expor o comando equivalente em `steps.<alias>.command`

Regras de caminho:
- caminhos relativos vivem no scratch directory da run
- caminhos absolutos precisam estar em `engine.permitted_dirs`
  (verificado em `validate_for_run`)
- `to` que é um diretório recebe os arquivos com o mesmo nome

Dry-run:
- com destino fora do scratch (`has_side_effect()`), nada é copiado;
  apenas o comando é exposto e registrado no log
"""

from __future__ import annotations

import glob
import os
import shlex
import shutil
from pathlib import Path
from typing import Any, List

from dagflow.core.pipeline.capabilities import DestinationOutsideScratch, PermittedPaths, absolute_path
from dagflow.core.pipeline.step import ConnectorStep


class CopyFile(ConnectorStep):
    key = "copy_file"
    required_fields = ("from", "to")
    side_effect = DestinationOutsideScratch("to")
    run_checks = (PermittedPaths("from", "to"),)
    outputs = {"command": "Equivalent shell command of the copy"}

    def execute(self, input: Any = None) -> Any:
        source = absolute_path(self, "from")
        destination = absolute_path(self, "to")
        command = f"cp {shlex.quote(source)} {shlex.quote(destination)}"
        self.set_output("command", command)

        if self.is_dry_run() and self.has_side_effect():
            self.log(f"Dry run, not executing: {command}")
            return True

        directory = Path(destination).parent
        if not directory.exists():
            self.log(f"Creating a directory at {directory}")
            directory.mkdir(parents=True, exist_ok=True)

        if os.path.isfile(source) and not os.path.isdir(destination):
            self._copy(source, destination)
            return True

        files: List[str] = [path for path in sorted(glob.glob(source)) if os.path.isfile(path)]
        if not files:
            self.log(f"No files match {source}", level="DEBUG")
            return True

        self.log(f"Copying {len(files)} files")
        into_directory = os.path.isdir(destination)
        for path in files:
            target = os.path.join(destination, os.path.basename(path)) if into_directory else destination
            self._copy(path, target)
        return True

    def _copy(self, source: str, destination: str) -> None:
        self.log(f"Copying {source} to {destination}")
        shutil.copyfile(source, destination)
