"""
Runtime — fachada do host entregue ao script de modelo.

O script de treino nunca conhece o armazenamento físico dos dados nem
o layout de disco do host. Tudo o que ele precisa passa pelo Runtime:

    - `pipeline_meta()`   → descrição estática do pipeline (assíncrona)
    - `task_type()`       → fase atual (síncrona, nunca bloqueia)
    - `notify_progress()` → relatório fire-and-forget de progresso
    - `save_model()`      → persiste modelo a partir de caminho ou stream
    - `read_model()`      → caminho do último modelo salvo
    - `data_source`       → data source já processado pelos dataflows

Decisões arquiteturais:
    - `progress_value` fora de [0, 100] é erro do chamador e falha imediatamente
    - Uma falha do sink de progresso vira warning no event log; o script de
      treino não é interrompido por um canal de diagnóstico
    - I/O de persistência roda fora do event loop

Limites explícitos:
    - Não treina modelos
    - Não decide formato de serialização do modelo
"""

from __future__ import annotations

import asyncio
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Union, runtime_checkable

from sluice.core.datasource import DataSourceApi
from sluice.core.exceptions import InvalidProgressValue
from sluice.core.context.context import ExecutionContext

from .model_store import ModelSource, ModelStore
from .types import ProgressInfo, TaskType

if TYPE_CHECKING:
    from sluice.core.pipeline.meta import PipelineMeta


ProgressSink = Callable[[ProgressInfo], Any]

RUNTIME_STAGE_ID = "runtime"


@runtime_checkable
class Runtime(Protocol):
    data_source: DataSourceApi

    async def pipeline_meta(self) -> "PipelineMeta":
        ...

    def task_type(self) -> TaskType:
        ...

    def notify_progress(self, info: ProgressInfo) -> None:
        ...

    async def save_model(self, source: ModelSource, filename: str) -> None:
        ...

    async def read_model(self) -> str:
        ...


def _validate_progress(info: Any) -> ProgressInfo:
    if not isinstance(info, ProgressInfo):
        raise InvalidProgressValue(
            message="notify_progress expects a ProgressInfo",
            details={"received": type(info).__name__},
        )
    value = info.progress_value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or not 0 <= value <= 100:
        raise InvalidProgressValue(
            message="progress_value must be within [0, 100]",
            details={"progress_value": repr(value)},
        )
    if not isinstance(info.extend_data, dict):
        raise InvalidProgressValue(
            message="extend_data must be a dict",
            details={"extend_data_type": type(info.extend_data).__name__},
        )
    return info


class LocalRuntime:
    """Runtime local: modelo persistido no filesystem, progresso no event log."""

    def __init__(
        self,
        *,
        data_source: DataSourceApi,
        context: ExecutionContext,
        model_store: ModelStore,
        meta: Optional["PipelineMeta"] = None,
        config_path: Optional[Union[str, Path]] = None,
        task_type: Optional[TaskType] = None,
        progress_sink: Optional[ProgressSink] = None,
    ):
        if meta is None and config_path is None:
            raise ValueError("LocalRuntime requires either meta or config_path")
        self.data_source = data_source
        self.context = context
        self.model_store = model_store
        self._meta = meta
        self._config_path = config_path
        self._task_type = task_type
        self._progress_sink = progress_sink
        self._meta_lock = asyncio.Lock()

    async def pipeline_meta(self) -> "PipelineMeta":
        if self._meta is not None:
            return self._meta
        async with self._meta_lock:
            if self._meta is None:
                from sluice.core.pipeline.meta import load_pipeline_meta

                self._meta = await asyncio.to_thread(load_pipeline_meta, str(self._config_path))
        return self._meta

    def task_type(self) -> TaskType:
        return self._task_type if self._task_type is not None else TaskType.UNKNOWN

    def notify_progress(self, info: ProgressInfo) -> None:
        info = _validate_progress(info)
        self.context.log(
            stage_id=RUNTIME_STAGE_ID,
            level="info",
            message="progress",
            progress_value=info.progress_value,
            extend_data=info.extend_data,
        )
        if self._progress_sink is None:
            return
        try:
            self._progress_sink(info)
        except Exception as e:
            # canal de diagnóstico: a falha fica registrada, o treino continua
            self.context.add_warning(stage_id=RUNTIME_STAGE_ID, message=f"progress sink failed: {e}")
            self.context.log(
                stage_id=RUNTIME_STAGE_ID,
                level="warning",
                message="progress sink failed",
                error_type=e.__class__.__name__,
                error_message=str(e) or "error",
            )

    async def save_model(self, source: ModelSource, filename: str) -> None:
        artifact = await asyncio.to_thread(self.model_store.save, source, filename)
        self.context.log(
            stage_id=RUNTIME_STAGE_ID,
            level="info",
            message="model saved",
            **artifact.to_dict(),
        )

    async def read_model(self) -> str:
        return await asyncio.to_thread(self.model_store.read)
