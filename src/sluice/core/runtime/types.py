"""
Tipos canônicos do runtime.

    - TaskType     → fase do pipeline executada pelo processo atual
    - ProgressInfo → relatório de progresso enviado ao canal fora de banda

Os valores dos enums são strings para facilitar serialização em eventos
e resultados de run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class TaskType(str, Enum):
    """
    Fases do pipeline.

        - ALL: data source, dataflows e modelo (run completa)
        - DATA: apenas data source e dataflows
        - MODEL: modelo executado de forma avulsa (standalone)
        - UNKNOWN: fase não determinada pelo host
    """

    ALL = "all"
    DATA = "data"
    MODEL = "model"
    UNKNOWN = "unknown"

    @property
    def runs_model(self) -> bool:
        return self in (TaskType.ALL, TaskType.MODEL)


@dataclass(frozen=True)
class ProgressInfo:
    """Progresso em percentual (0 a 100) + dados livres de diagnóstico."""

    progress_value: float
    extend_data: Dict[str, Any] = field(default_factory=dict)
