"""
PipelineRunner — execução de um pipeline em um workspace exclusivo.

Ordem de execução (sempre linear, na ordem declarada):
    1. datasource  → entry(options, context) -> DataSource
    2. dataflow[i] → entry(source, options, context) -> DataSource
    3. model       → entry(runtime, options, context) (apenas ALL / MODEL)

Decisões arquiteturais:
    - Fail-fast: a primeira exceção vira `StageResult(FAILED)` com
      `payload["error"]` (ErrorPayload); os stages restantes ficam SKIPPED
    - Saídas de datasource/dataflow são verificadas por `verify_data_source`
      (contrato + coerência dos splits com a metadata)
    - O workspace é adquirido antes do primeiro stage e sempre liberado
    - Cancelamento (asyncio) não é convertido em FAILED: propaga ao chamador
      depois de liberar o workspace

Limites explícitos:
    - Não agenda múltiplos pipelines
    - Não paraleliza stages
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sluice.core.context.bridge import ModuleBridge, PythonModuleBackend, ScriptModuleBackend
from sluice.core.context.context import ExecutionContext
from sluice.core.context.workspace import Workspace
from sluice.core.datasource import DataSourceApi, verify_data_source
from sluice.core.errors import ErrorPayload, exception_to_error, runner_configuration_error
from sluice.core.runtime.model_store import ModelStore
from sluice.core.runtime.runtime import LocalRuntime, ProgressSink
from sluice.core.runtime.types import TaskType
from sluice.core.types.meta import meta_to_dict

from .meta import PipelineMeta, StageSpec
from .registry import ScriptRegistry
from .types import RunResult, StageKind, StageResult, StageStatus


PathLike = Union[str, Path]


def _plan(meta: PipelineMeta) -> List[Tuple[str, StageKind, Optional[StageSpec]]]:
    plan: List[Tuple[str, StageKind, Optional[StageSpec]]] = [("datasource", StageKind.DATASOURCE, meta.datasource)]
    for i, spec in enumerate(meta.dataflow):
        plan.append((f"dataflow[{i}]", StageKind.DATAFLOW, spec))
    plan.append(("model", StageKind.MODEL, meta.model))
    return plan


async def _size_metrics(source: DataSourceApi) -> Dict[str, Any]:
    ds_meta = await source.get_data_source_meta()
    size = ds_meta.size
    metrics = {"train": size.train, "test": size.test}
    if size.validation is not None:
        metrics["validation"] = size.validation
    return metrics


class PipelineRunner:
    """Executa um `PipelineMeta` com fail-fast e resultados por stage."""

    def __init__(
        self,
        *,
        meta: PipelineMeta,
        workspace_root: PathLike,
        task_type: TaskType = TaskType.ALL,
        registry: Optional[ScriptRegistry] = None,
        run_id: Optional[str] = None,
        script_paths: Sequence[PathLike] = (),
        model_root: Optional[PathLike] = None,
        progress_sink: Optional[ProgressSink] = None,
    ):
        self.meta = meta
        self.workspace_root = Path(workspace_root)
        self.task_type = TaskType(task_type)
        if registry is None:
            from sluice.builtins import default_registry

            registry = default_registry()
        self.registry = registry
        self.run_id = run_id or uuid.uuid4().hex
        self.script_paths = [Path(p) for p in script_paths] + meta.script_paths()
        self.model_root = Path(model_root) if model_root is not None else None
        self.progress_sink = progress_sink

    def _bridge(self) -> ModuleBridge:
        return ModuleBridge([PythonModuleBackend(), ScriptModuleBackend(self.script_paths)])

    def _result(
        self,
        stage_id: str,
        kind: StageKind,
        spec: Optional[StageSpec],
        status: StageStatus,
        summary: str,
        ctx: ExecutionContext,
        *,
        metrics: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> StageResult:
        return StageResult(
            stage_id=stage_id,
            kind=kind,
            status=status,
            summary=summary,
            ref=spec.ref if spec is not None else None,
            metrics=dict(metrics or {}),
            warnings=list(ctx.warnings.get(stage_id, [])),
            payload=dict(payload or {}),
        )

    async def _run_stage(
        self,
        kind: StageKind,
        spec: StageSpec,
        source: Optional[DataSourceApi],
        ctx: ExecutionContext,
        stage_id: str,
    ) -> Tuple[Optional[DataSourceApi], Dict[str, Any], Dict[str, Any]]:
        entry = await self.registry.resolve(spec.ref, ctx.bridge)
        options = dict(spec.options)

        if kind == StageKind.DATASOURCE:
            out = await verify_data_source(await entry(options, ctx), stage_id=stage_id)
            return out, await _size_metrics(out), {}

        if kind == StageKind.DATAFLOW:
            out = await verify_data_source(await entry(source, options, ctx), stage_id=stage_id)
            return out, await _size_metrics(out), {}

        store = ModelStore(
            root=self.model_root or ctx.workspace.model_dir,
            pipeline_id=self.meta.pipeline_id,
        )
        runtime = LocalRuntime(
            data_source=source,
            context=ctx,
            model_store=store,
            meta=self.meta,
            task_type=self.task_type,
            progress_sink=self.progress_sink,
        )
        await entry(runtime, options, ctx)
        payload: Dict[str, Any] = {"model_saved": store.index_path().exists()}
        if payload["model_saved"]:
            payload["model_path"] = store.read()
        return source, {}, payload

    async def run(self) -> RunResult:
        pipeline_id = self.meta.pipeline_id
        workspace = Workspace.acquire(self.workspace_root, run_id=self.run_id)
        ctx = ExecutionContext(
            run_id=self.run_id,
            workspace=workspace,
            bridge=self._bridge(),
            meta={"pipeline_id": pipeline_id, "task_type": self.task_type.value},
        )
        results: Dict[str, StageResult] = {}
        source: Optional[DataSourceApi] = None
        config_error: Optional[ErrorPayload] = None
        if self.task_type == TaskType.MODEL and self.meta.model is None:
            config_error = runner_configuration_error(
                message="Task MODEL requer um stage de modelo",
                details={"pipeline_id": pipeline_id},
            )
        halted = config_error is not None

        try:
            for stage_id, kind, spec in _plan(self.meta):
                if kind == StageKind.MODEL and spec is None:
                    if config_error is not None:
                        results[stage_id] = self._failed(stage_id, kind, spec, config_error, ctx)
                    continue

                if halted:
                    results[stage_id] = self._result(
                        stage_id, kind, spec, StageStatus.SKIPPED, "skipped due to failed stage", ctx
                    )
                    continue

                if kind == StageKind.MODEL and not self.task_type.runs_model:
                    results[stage_id] = self._result(
                        stage_id, kind, spec, StageStatus.SKIPPED, f"skipped by task type '{self.task_type.value}'", ctx
                    )
                    continue

                ctx.log(stage_id=stage_id, level="info", message="stage started", ref=spec.ref)
                try:
                    source, metrics, payload = await self._run_stage(kind, spec, source, ctx, stage_id)
                except Exception as e:
                    err = exception_to_error(e, stage_id=stage_id)
                    ctx.log(stage_id=stage_id, level="error", message="stage failed", error_type=err.type)
                    results[stage_id] = self._failed(stage_id, kind, spec, err, ctx)
                    halted = True
                    continue

                ctx.log(stage_id=stage_id, level="info", message="stage finished", **metrics)
                results[stage_id] = self._result(
                    stage_id, kind, spec, StageStatus.SUCCESS, "ok", ctx, metrics=metrics, payload=payload
                )

            ds_meta = None
            if not halted and source is not None:
                ds_meta = meta_to_dict(await source.get_data_source_meta())
        finally:
            close = getattr(source, "close", None)
            try:
                if close is not None:
                    await close()
            finally:
                workspace.release()

        return RunResult(
            run_id=self.run_id,
            pipeline_id=pipeline_id,
            task_type=self.task_type,
            stages=results,
            data_source_meta=ds_meta,
            events=list(ctx.events),
        )

    def _failed(
        self,
        stage_id: str,
        kind: StageKind,
        spec: Optional[StageSpec],
        err: ErrorPayload,
        ctx: ExecutionContext,
    ) -> StageResult:
        return self._result(
            stage_id, kind, spec, StageStatus.FAILED, err.message, ctx, payload={"error": err.to_dict()}
        )


def run_pipeline(
    meta: Union[PipelineMeta, PathLike],
    workspace_root: PathLike,
    *,
    task_type: TaskType = TaskType.ALL,
    local_path: Optional[PathLike] = None,
    **kwargs: Any,
) -> RunResult:
    """Wrapper síncrono: carrega o pipeline (se for caminho) e executa."""
    if not isinstance(meta, PipelineMeta):
        from .meta import load_pipeline_meta

        meta = load_pipeline_meta(meta, local_path=local_path)
    runner = PipelineRunner(meta=meta, workspace_root=workspace_root, task_type=task_type, **kwargs)
    return asyncio.run(runner.run())
