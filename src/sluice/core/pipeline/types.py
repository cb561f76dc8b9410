"""
Tipos canônicos da execução de pipelines.

    - StageKind   → papel do stage (datasource, dataflow, model)
    - StageStatus → estado final (SUCCESS, SKIPPED, FAILED)
    - StageResult → resultado imutável de um stage
    - RunResult   → resultado agregado da run

Os valores dos enums são strings para facilitar serialização.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sluice.core.runtime.types import TaskType


class StageKind(str, Enum):
    DATASOURCE = "datasource"
    DATAFLOW = "dataflow"
    MODEL = "model"


class StageStatus(str, Enum):
    """
    Estados finais de um stage.

        - SUCCESS: entry concluído e saída validada
        - SKIPPED: não executado (falha anterior ou task type)
        - FAILED: entry levantou exceção ou violou o contrato
    """

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult:
    """
    Resultado imutável de um stage.

    Em caso de falha, `payload["error"]` carrega o `ErrorPayload` serializado.
    """

    stage_id: str
    kind: StageKind
    status: StageStatus
    summary: str
    ref: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "summary": self.summary,
            "ref": self.ref,
            "metrics": dict(self.metrics),
            "warnings": list(self.warnings),
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma execução de pipeline."""

    run_id: str
    pipeline_id: str
    task_type: TaskType
    stages: Dict[str, StageResult] = field(default_factory=dict)
    data_source_meta: Optional[Dict[str, Any]] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.status != StageStatus.FAILED for r in self.stages.values())

    def failed(self) -> Optional[StageResult]:
        for r in self.stages.values():
            if r.status == StageStatus.FAILED:
                return r
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "pipeline_id": self.pipeline_id,
            "task_type": self.task_type.value,
            "ok": self.ok,
            "stages": {sid: r.to_dict() for sid, r in self.stages.items()},
            "data_source_meta": self.data_source_meta,
        }
