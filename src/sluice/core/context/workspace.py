"""
Workspace — diretórios privados de uma execução do pipeline.

Cada run recebe três diretórios:
    - data_dir:  datasets baixados ou gerados pelo data source
    - cache_dir: artefatos intermediários de dataflows e modelos
    - model_dir: modelos produzidos pela run

Decisões arquiteturais:
    - Os diretórios existem ao fim de `acquire`
    - A exclusividade é garantida por um lock file criado com O_EXCL:
      duas runs concorrentes nunca compartilham o mesmo workspace
    - O lock registra o run_id dono para diagnóstico

Invariantes:
    - Um workspace adquirido possui exatamente um dono até `release`
    - `release` é idempotente

Limites explícitos:
    - Não limpa conteúdo entre runs
    - Não sincroniza escritas entre stages (a fronteira é a chamada/retorno)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Union

from sluice.core.exceptions import WorkspaceInUse


LOCK_FILENAME = ".sluice.lock"


@dataclass
class Workspace:
    root: Path
    data_dir: Path
    cache_dir: Path
    model_dir: Path
    run_id: str = ""
    _locked: bool = field(default=False, init=False, repr=False)

    @classmethod
    def acquire(cls, root: Union[str, Path], *, run_id: str) -> "Workspace":
        """Cria (se necessário) e trava o workspace para a run `run_id`.

        Raises:
            WorkspaceInUse: Se outra run já detém o lock do workspace.
        """
        root = Path(root).expanduser().absolute()
        root.mkdir(parents=True, exist_ok=True)

        lock = root / LOCK_FILENAME
        try:
            fd = os.open(str(lock), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            owner: Any = None
            try:
                owner = json.loads(lock.read_text(encoding="utf-8")).get("run_id")
            except (OSError, ValueError):
                owner = None
            raise WorkspaceInUse(
                message=f"Workspace is locked by another run: {root}",
                details={"workspace": str(root), "owner_run_id": owner, "run_id": run_id},
                hint="Use um workspace distinto por run ou remova o lock de uma run encerrada.",
            )

        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "run_id": run_id,
                    "pid": os.getpid(),
                    "acquired_at": datetime.now(timezone.utc).isoformat(),
                },
                f,
            )

        ws = cls(
            root=root,
            data_dir=root / "data",
            cache_dir=root / "cache",
            model_dir=root / "model",
            run_id=run_id,
        )
        for d in (ws.data_dir, ws.cache_dir, ws.model_dir):
            d.mkdir(parents=True, exist_ok=True)
        ws._locked = True
        return ws

    @property
    def locked(self) -> bool:
        return self._locked

    def release(self) -> None:
        if not self._locked:
            return
        try:
            (self.root / LOCK_FILENAME).unlink()
        except FileNotFoundError:
            pass
        self._locked = False

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.release()
