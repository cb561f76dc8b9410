"""
ExecutionContext — ambiente entregue a todo script do pipeline.

Todo entry (data source, dataflow, modelo) recebe o mesmo contexto da run,
que expõe:
    - `bridge`: capacidade de import com backends nomeados
    - `datakit`: namespace de blocos de construção de dados (accessors,
      data sources, helpers numpy/pandas), usado diretamente pelos scripts
    - `import_py(name)` / `import_script(name)`: loaders assíncronos e
      idempotentes por nome
    - `workspace`: diretórios privados da run (data, cache, model)
    - log estruturado de eventos e warnings por stage

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Nenhum script acessa estado global para se comunicar com outro
    - Logs sempre incluem `run_id` e `stage_id`

Limites explícitos:
    - Não executa stages
    - Não persiste o event log automaticamente
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import ModuleType
from typing import Any, Dict, List, Optional

from .bridge import PY_BACKEND, SCRIPT_BACKEND, ModuleBridge
from .workspace import Workspace


def _default_datakit() -> ModuleType:
    from sluice import datakit

    return datakit


@dataclass
class ExecutionContext:
    """
    Contexto de execução compartilhado de uma run do pipeline.

    Campos canônicos:
    - run_id: identificador único da execução
    - workspace: diretórios exclusivos da run
    - bridge: loader de módulos (backends "py" e "script")
    - datakit: namespace de dados entregue aos scripts
    - events: log estruturado de eventos
    - warnings: warnings por stage_id
    """

    run_id: str
    workspace: Workspace
    bridge: ModuleBridge = field(default_factory=ModuleBridge)
    datakit: ModuleType = field(default_factory=_default_datakit)
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Module loading
    # -----------------------------
    async def import_py(self, name: str) -> Any:
        """Importa um pacote Python instalado."""
        return await self.bridge.import_module(PY_BACKEND, name)

    async def import_script(self, name: str) -> Any:
        """Importa um módulo local dos diretórios de scripts do pipeline."""
        return await self.bridge.import_module(SCRIPT_BACKEND, name)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, stage_id: Optional[str], level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "stage_id": stage_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, stage_id: str, message: str) -> None:
        if stage_id not in self.warnings:
            self.warnings[stage_id] = []
        self.warnings[stage_id].append(message)

    def events_for(self, stage_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("stage_id") == stage_id]
